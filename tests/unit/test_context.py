"""
Unit tests for ServerContext.
"""

import threading

from cohttp.core import ServerContext


def start_thread(target) -> threading.Thread:
    thread = threading.Thread(target=target, daemon=True)
    thread.start()
    return thread


class TestServerContext:

    def test_join_all_waits_for_threads(self):
        context = ServerContext()
        release = threading.Event()
        finished = []

        def work():
            release.wait(5.0)
            finished.append(True)

        for _ in range(3):
            context.register(start_thread(work))
        assert len(context) == 3

        release.set()
        assert context.join_all() is True
        assert finished == [True, True, True]
        assert len(context) == 0

    def test_join_all_timeout(self):
        context = ServerContext()
        release = threading.Event()
        context.register(start_thread(lambda: release.wait(5.0)))

        assert context.join_all(timeout=0.1) is False
        assert len(context) == 1

        release.set()
        assert context.join_all(timeout=5.0) is True

    def test_join_all_empty(self):
        assert ServerContext().join_all(timeout=0) is True

    def test_register_prunes_finished_threads(self):
        context = ServerContext()
        done = start_thread(lambda: None)
        done.join()
        context.register(done)

        release = threading.Event()
        context.register(start_thread(lambda: release.wait(5.0)))

        assert len(context._threads) == 1
        assert context.total_registered == 2

        release.set()
        context.join_all()

    def test_concurrent_register(self):
        context = ServerContext()
        release = threading.Event()

        def register_many():
            for _ in range(20):
                context.register(start_thread(lambda: release.wait(5.0)))

        registrars = [start_thread(register_many) for _ in range(4)]
        for registrar in registrars:
            registrar.join()

        assert context.total_registered == 80
        assert len(context) == 80

        release.set()
        assert context.join_all(timeout=5.0)

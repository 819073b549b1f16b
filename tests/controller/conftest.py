"""Fixtures for controller tests.

DeferredGateway holds jobs until the test runs them, so every interleaving
of requests and completions can be reproduced exactly.
"""

from collections.abc import Callable
from concurrent.futures import Future

import duckdb
import pytest

from duckview.controller import ViewerController
from duckview.core import Result
from duckview.core.connections import classify_error, fetch_page
from duckview.core.models import ViewerError


class DeferredGateway:
    """In-process gateway; jobs run on the test thread when asked to."""

    def __init__(self, conn: duckdb.DuckDBPyConnection) -> None:
        self.conn = conn
        self.pending: list[tuple[Callable, Future]] = []
        self.closed = False
        self.submitted = 0

    def submit(self, job):
        future: Future = Future()
        self.pending.append((job, future))
        self.submitted += 1
        return future

    def execute(self, plan):
        return self.submit(lambda conn: Result.ok(fetch_page(conn, plan)))

    def run(self, index: int = 0) -> None:
        """Run one pending job and resolve its future."""
        job, future = self.pending.pop(index)
        try:
            result = job(self.conn)
        except duckdb.Error as e:
            result = Result.fail(classify_error(e))
        future.set_result(result)

    def fail(self, index: int, error: ViewerError) -> None:
        """Resolve a pending job with a failure without running it."""
        _, future = self.pending.pop(index)
        future.set_result(Result.fail(error))

    def crash(self, index: int, exc: BaseException) -> None:
        _, future = self.pending.pop(index)
        future.set_exception(exc)

    def close(self) -> None:
        self.closed = True


def settle(gateway: DeferredGateway, controller: ViewerController) -> int:
    """Run every pending job and apply the completions; returns how many applied."""
    applied = 0
    while gateway.pending:
        gateway.run(0)
        applied += controller.process_completions()
    return applied


@pytest.fixture
def gateway(duckdb_conn):
    return DeferredGateway(duckdb_conn)


@pytest.fixture
def controller(gateway, settings):
    controller = ViewerController(gateway, settings)
    yield controller
    controller.close()


@pytest.fixture
def opened(gateway, controller, orders_csv):
    """Controller showing page 1 of the 250-row orders file."""
    controller.open_file(orders_csv)
    settle(gateway, controller)
    return controller


@pytest.fixture(name="settle")
def settle_fixture(gateway, controller):
    """Callable that drains the gateway and the completion queue."""
    return lambda: settle(gateway, controller)

from __future__ import annotations

import pytest
from pymongo.errors import OperationFailure, ServerSelectionTimeoutError

from market_service.app.errors import ItemNotAvailableError, StorageUnavailableError
from market_service.app.repositories.transaction import MongoTransactionRunner


class FakeSession:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.kwargs: dict = {}

    def __enter__(self) -> "FakeSession":
        return self

    def __exit__(self, *exc_info) -> None:
        return None

    def with_transaction(self, callback, **kwargs):
        self.kwargs = kwargs
        if self.error is not None:
            raise self.error
        return callback(self)


class FakeClient:
    def __init__(self, session: FakeSession) -> None:
        self.session = session

    def start_session(self) -> FakeSession:
        return self.session


def test_run_returns_callback_result_inside_snapshot_transaction() -> None:
    session = FakeSession()
    runner = MongoTransactionRunner(FakeClient(session))  # type: ignore[arg-type]

    result = runner.run(lambda s: ("ok", s))

    assert result == ("ok", session)
    assert session.kwargs["read_concern"].level == "snapshot"
    assert session.kwargs["write_concern"].document == {"w": "majority"}


def test_driver_errors_become_storage_unavailable() -> None:
    runner = MongoTransactionRunner(
        FakeClient(FakeSession(ServerSelectionTimeoutError("no primary")))  # type: ignore[arg-type]
    )

    with pytest.raises(StorageUnavailableError):
        runner.run(lambda s: None)


def test_domain_errors_pass_through() -> None:
    runner = MongoTransactionRunner(FakeClient(FakeSession()))  # type: ignore[arg-type]

    def callback(session):
        raise ItemNotAvailableError()

    with pytest.raises(ItemNotAvailableError):
        runner.run(callback)


def test_operation_failure_is_storage_error() -> None:
    runner = MongoTransactionRunner(
        FakeClient(FakeSession(OperationFailure("Transaction numbers are only allowed on a replica set")))  # type: ignore[arg-type]
    )

    with pytest.raises(StorageUnavailableError):
        runner.run(lambda s: None)

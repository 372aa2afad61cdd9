import pytest

from tokenstore import admin_main
from tokenstore.application.token_record_store import TokenRecordStore
from tokenstore.domain.errors import StorageError


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    monkeypatch.setattr(admin_main, "setup_logging", lambda level: None)


def _make_store(opener, hasher, clock):
    return TokenRecordStore(
        "redis://fake:6379/0", open_documents=opener, hasher=hasher, clock=clock
    )


def test_count(opener, hasher, clock, docs, capsys):
    docs.docs["alice"] = {"_id": "alice", "_rev": "1-a"}
    docs.docs["bob"] = {"_id": "bob", "_rev": "1-b"}

    code = admin_main.main(["count"], store=_make_store(opener, hasher, clock))

    assert code == 0
    assert capsys.readouterr().out.strip() == "2"
    assert docs.closed == 1


def test_invalidate(opener, hasher, clock, docs):
    docs.docs["alice"] = {"_id": "alice", "_rev": "1-a"}

    code = admin_main.main(
        ["invalidate", "alice"], store=_make_store(opener, hasher, clock)
    )

    assert code == 0
    assert docs.docs == {}


def test_clear_requires_confirmation(opener, hasher, clock, docs):
    docs.docs["alice"] = {"_id": "alice", "_rev": "1-a"}

    code = admin_main.main(["clear"], store=_make_store(opener, hasher, clock))

    assert code == 2
    assert docs.destroyed == 0

    code = admin_main.main(
        ["clear", "--yes"], store=_make_store(opener, hasher, clock)
    )

    assert code == 0
    assert docs.destroyed == 1


def test_storage_failure_exit_code(opener, hasher, clock, docs):
    docs.fail_with = StorageError("redis down")

    code = admin_main.main(["count"], store=_make_store(opener, hasher, clock))

    assert code == 1

import pytest

from tests.fakes import FakeClock, FakeDocumentStore, FakeHasher, FakeOpener
from tokenstore.application.token_record_store import TokenRecordStore


@pytest.fixture()
def docs():
    return FakeDocumentStore()


@pytest.fixture()
def opener(docs):
    return FakeOpener(docs)


@pytest.fixture()
def hasher():
    return FakeHasher()


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def store(opener, hasher, clock):
    return TokenRecordStore(
        "redis://fake:6379/0", open_documents=opener, hasher=hasher, clock=clock
    )

import json

import pytest

from sosmeet.persistence.store import Store
from sosmeet.server.dispatcher import Dispatcher
from sosmeet.server.session import Session, SessionDirectory


class RecordingConnection:
    """Stands in for Connection: decodes and keeps everything pushed to it."""

    def __init__(self):
        self.sent = []
        self.closed = False

    def push(self, message):
        if self.closed:
            return False
        self.sent.append(json.loads(message))
        return True

    def of_type(self, event_type):
        return [e for e in self.sent if e["type"] == event_type]

    def last(self):
        return self.sent[-1]


def new_session():
    return Session(RecordingConnection())


def send(dispatcher, session, **frame):
    dispatcher.dispatch(session, json.dumps(frame))


def login(dispatcher, username):
    session = new_session()
    send(dispatcher, session, type="login", username=username)
    return session


@pytest.fixture
def store():
    return Store()


@pytest.fixture
def directory():
    return SessionDirectory()


@pytest.fixture
def dispatcher(store, directory):
    return Dispatcher(store, directory)

from __future__ import annotations

from datetime import datetime

import pytest

from hospital_admin._infra.backend import MemoryBackend
from hospital_admin.app import HospitalApp

from tests.helpers import TickingClock

FIXED_NOW = datetime(2025, 3, 1, 9, 0)


@pytest.fixture()
def backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture()
def app(backend: MemoryBackend) -> HospitalApp:
    return HospitalApp(backend, clock=TickingClock(), now=lambda: FIXED_NOW)


@pytest.fixture()
def store(app: HospitalApp):
    return app.store


@pytest.fixture()
def rules(app: HospitalApp):
    return app.rules


@pytest.fixture()
def query(app: HospitalApp):
    return app.query

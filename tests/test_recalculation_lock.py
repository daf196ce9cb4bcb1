"""
Tests for the in-process recalculation lock and how the API reports it.
"""
import json
import threading
import pytest
from unittest.mock import patch

from zeladoria import create_app
from zeladoria.models import db
from zeladoria.recalculation_lock import RecalculationBusyError, RecalculationLockManager


@pytest.fixture
def lock():
    return RecalculationLockManager(timeout_seconds=1)


@pytest.fixture
def client():
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    })
    with app.app_context():
        db.create_all()
        yield app.test_client()
        db.session.remove()
        db.drop_all()


class TestRecalculationLockManager:
    """Tests for RecalculationLockManager."""

    def test_idle_status(self, lock):
        """Test the status of an unused lock."""
        status = lock.get_status()

        assert status['is_locked'] is False
        assert status['current_operation'] is None
        assert status['held_for_seconds'] == 0
        assert status['timeout_seconds'] == 1

    def test_acquire_sets_and_clears_operation(self, lock):
        """Test that the holder is tracked while inside the block."""
        with lock.acquire("full-recalculation"):
            assert lock.is_locked()
            assert lock.get_current_operation() == "full-recalculation"

        assert not lock.is_locked()
        assert lock.get_current_operation() is None

    def test_reentrant_in_same_thread(self, lock):
        """Test that nesting keeps the outer operation name."""
        with lock.acquire("register-daily"):
            with lock.acquire("full-recalculation"):
                assert lock.get_current_operation() == "register-daily"
            assert lock.is_locked()

        assert not lock.is_locked()

    def test_released_on_error(self, lock):
        """Test that an exception inside the block releases the lock."""
        with pytest.raises(RuntimeError):
            with lock.acquire("full-recalculation"):
                raise RuntimeError("boom")

        assert not lock.is_locked()

    def test_other_thread_times_out(self, lock):
        """Test that a second thread gives up with RecalculationBusyError."""
        errors = []

        def contender():
            try:
                with lock.acquire("register-daily", timeout_seconds=0.05):
                    pass
            except RecalculationBusyError as exc:
                errors.append(exc)

        with lock.acquire("full-recalculation"):
            worker = threading.Thread(target=contender)
            worker.start()
            worker.join()

        assert len(errors) == 1
        assert "full-recalculation" in str(errors[0])

    def test_other_thread_waits_for_release(self, lock):
        """Test that a waiting thread runs once the holder finishes."""
        entered = threading.Event()
        order = []

        def contender():
            entered.set()
            with lock.acquire("register-daily"):
                order.append("contender")

        with lock.acquire("full-recalculation"):
            worker = threading.Thread(target=contender)
            worker.start()
            entered.wait()
            order.append("holder")

        worker.join()
        assert order == ["holder", "contender"]


class TestBusyResponses:
    """Tests for the 503 responses while a recalculation holds the lock."""

    def test_recalculate_returns_503_when_busy(self, client):
        """Test the admin recalculation endpoint."""
        with patch('zeladoria.rocagem.routes.recalculate_all_schedules',
                   side_effect=RecalculationBusyError("busy")):
            response = client.post('/api/admin/recalculate-schedules')

        assert response.status_code == 503
        assert json.loads(response.data)['error'] == 'Recalculation in progress'

    def test_register_returns_503_when_busy(self, client):
        """Test the registration endpoint."""
        with patch('zeladoria.rocagem.routes.register_daily_mowing',
                   side_effect=RecalculationBusyError("busy")):
            response = client.post('/api/areas/register-daily', json={'areaIds': [1], 'date': '2024-01-01'})

        assert response.status_code == 503

    def test_health_reports_lock_status(self, client):
        """Test that /health exposes the lock state."""
        data = json.loads(client.get('/health').data)

        assert data['status'] == 'ok'
        assert data['recalculation']['is_locked'] is False

"""
Tests for the Flask JSON API.
"""

from datetime import datetime

import pytest

from shotsieve.app import create_app
from shotsieve.database import Database
from shotsieve.grouping.quota import DailyQuota


@pytest.fixture
def engine(photo_library):
    """Engine over three loaded bursts."""
    engine = photo_library.add_bursts(3).engine()
    engine.load_all()
    return engine


@pytest.fixture
def client(engine):
    app = create_app(engine)
    app.config['TESTING'] = True
    return app.test_client()


class TestSessionRoutes:
    """Test read-only session routes."""

    def test_ping(self, client):
        """The ping endpoint answers."""
        response = client.get('/api/ping')
        assert response.status_code == 200
        assert response.get_json()['status'] == 'ok'

    def test_session(self, client):
        """The session snapshot is returned as JSON."""
        data = client.get('/api/session').get_json()
        assert data['discovered_group_count'] == 3
        assert data['current_index'] == 0
        assert [t['id'] for t in data['current_group']] == ['g000_0.jpg', 'g000_1.jpg']

    def test_groups(self, photo_library):
        """Groups can include the look-ahead queue."""
        engine = photo_library.add_bursts(20).engine()
        engine.load_all()
        client = create_app(engine).test_client()

        assert client.get('/api/groups').get_json()['count'] == 11
        assert client.get('/api/groups?include_queued=1').get_json()['count'] == 20


class TestLoadRoutes:
    """Test loading and cancelling."""

    def test_load_and_wait(self, client):
        """A waiting load returns the fresh snapshot."""
        response = client.post('/api/load', json={'wait': True})
        assert response.status_code == 200
        assert response.get_json()['did_finish_initial_load'] is True

    def test_load_in_background(self, client, engine):
        """A plain load starts a background thread."""
        response = client.post('/api/load')
        assert response.status_code == 202
        assert response.get_json()['status'] in ('started', 'already_loading')

    def test_cancel(self, client):
        """Cancel is always accepted."""
        response = client.post('/api/cancel')
        assert response.status_code == 200
        assert response.get_json()['status'] == 'cancel_requested'


class TestReviewRoutes:
    """Test advance, navigation and check routes."""

    def test_advance(self, client):
        """Advancing moves to the next group."""
        data = client.post('/api/advance').get_json()
        assert data['moved'] is True
        assert data['session']['current_index'] == 1
        assert data['session']['used_quota'] == 1

    def test_advance_quota_exceeded(self, photo_library):
        """An exhausted quota is reported as 429."""
        engine = photo_library.add_bursts(2).engine(quota=DailyQuota(limit=0))
        engine.load_all()
        response = create_app(engine).test_client().post('/api/advance')

        assert response.status_code == 429
        assert response.get_json()['error'] == 'quota_exceeded'
        assert engine.current_index == 0

    def test_quota_resets_on_new_day(self, photo_library):
        """A session used up on an earlier day reports a fresh quota today."""
        engine = photo_library.add_bursts(5).engine(quota=DailyQuota())
        engine.load_all()
        for _ in range(3):
            engine.advance(datetime(2024, 6, 1, 9, 0))
        assert engine.remaining_quota == 0
        client = create_app(engine).test_client()

        data = client.get('/api/session').get_json()
        assert data['remaining_quota'] == 3
        assert data['used_quota'] == 0

        response = client.post('/api/advance')
        assert response.status_code == 200
        assert response.get_json()['session']['used_quota'] == 1

    def test_navigate(self, client):
        """Navigation follows the requested direction."""
        data = client.post('/api/navigate', json={'direction': 'next'}).get_json()
        assert data['moved'] is True
        assert data['session']['current_index'] == 1

        data = client.post('/api/navigate', json={'direction': 'previous'}).get_json()
        assert data['session']['current_index'] == 0

    def test_navigate_invalid(self, client):
        """Unknown directions are rejected."""
        response = client.post('/api/navigate', json={'direction': 'sideways'})
        assert response.status_code == 400
        assert response.get_json()['error'] == 'invalid_direction'

    def test_check_toggle(self, client):
        """Toggling unchecks the best shot."""
        data = client.post('/api/check', json={'id': 'g000_1.jpg'}).get_json()
        assert data['changed'] is True
        member = [t for t in data['session']['current_group'] if t['id'] == 'g000_1.jpg'][0]
        assert member['is_checked'] is False

    def test_check_set(self, client):
        """An explicit value sets the decision."""
        data = client.post('/api/check', json={'id': 'g000_0.jpg', 'checked': True}).get_json()
        assert data['changed'] is True
        assert all(t['is_checked'] for t in data['session']['current_group'])

    def test_check_requires_id(self, client):
        """A check without an id is rejected."""
        response = client.post('/api/check', json={})
        assert response.status_code == 400
        assert response.get_json()['error'] == 'invalid_request'


class TestBucketRoutes:
    """Test bucket listing and deletion."""

    def test_bucket_after_advance(self, client):
        """The finalized group's discards are listed."""
        client.post('/api/advance')
        data = client.get('/api/bucket').get_json()
        assert data['item_count'] == 1
        assert data['groups'][0]['display_index'] == 1
        assert data['groups'][0]['items'][0]['id'] == 'g000_0.jpg'

    def test_delete(self, client, photo_library):
        """Deleting reports the count and updates the session."""
        client.post('/api/advance')
        response = client.post('/api/bucket/delete')
        assert response.status_code == 200
        assert response.get_json()['deleted'] == 1
        assert photo_library.deleter.deleted == ['g000_0.jpg']

    def test_delete_empty(self, client):
        """An empty bucket is a client error."""
        response = client.post('/api/bucket/delete')
        assert response.status_code == 400
        assert response.get_json()['error'] == 'empty_bucket'

    def test_delete_unauthorized(self, client, photo_library):
        """Missing rights are reported as 403."""
        client.post('/api/advance')
        photo_library.deleter.authorized = False
        response = client.post('/api/bucket/delete')
        assert response.status_code == 403
        assert response.get_json()['error'] == 'unauthorized'

    def test_delete_failure(self, client, photo_library):
        """Deleter failures are reported as 500."""
        client.post('/api/advance')
        photo_library.deleter.error = OSError("disk gone")
        response = client.post('/api/bucket/delete')
        assert response.status_code == 500
        assert response.get_json()['error'] == 'changes_failed'


class TestSettingsRoutes:
    """Test settings and retention routes."""

    def test_apply_settings(self, client, engine):
        """Window and preset are applied together."""
        response = client.post('/api/settings', json={'window_minutes': 500, 'preset': 'strict'})
        data = response.get_json()
        assert response.status_code == 200
        assert data['status'] == 'applied'
        assert data['session']['window_minutes'] == 240
        assert data['session']['preset'] == 'strict'
        assert engine.preset == 'strict'

    @pytest.mark.parametrize("payload", [
        None,
        {},
        {'window_minutes': 'soon'},
        {'window_minutes': True},
        {'preset': 'fuzzy'},
    ])
    def test_invalid_settings(self, client, payload):
        """Malformed settings are rejected."""
        response = client.post('/api/settings', json=payload)
        assert response.status_code == 400
        assert response.get_json()['error'] == 'invalid_settings'

    def test_retention_reset(self, client):
        """Resetting retention reloads the session."""
        client.post('/api/advance')
        data = client.post('/api/retention/reset').get_json()
        assert data['discovered_group_count'] == 3
        assert data['current_index'] == 0


class TestCacheRoutes:
    """Test database routes."""

    def test_without_database(self, client):
        """Sessions without a database have no cache."""
        assert client.get('/api/cache/stats').status_code == 404
        assert client.post('/api/cache/clear').status_code == 404

    def test_with_database(self, engine, temp_db):
        """Cache stats and clearing work with a database."""
        client = create_app(engine, Database(temp_db)).test_client()

        stats = client.get('/api/cache/stats').get_json()
        assert stats['total_entries'] == 0
        assert stats['retained_photos'] == 0

        assert client.post('/api/cache/clear').get_json()['status'] == 'cleared'

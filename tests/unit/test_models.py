"""
Unit tests for UserDB models.
"""

import pytest

from userdb_server.models import (
    GetUsersBatchResponse,
    GetUsersResponse,
    HealthResponse,
    User,
)


class TestUser:
    """Tests for the User entity."""

    def test_equality_uses_all_fields(self):
        assert User(1, "Ada", "Lovelace") == User(1, "Ada", "Lovelace")
        assert User(1, "Ada", "Lovelace") != User(1, "Ada", "Byron")
        assert User(1, "Ada", "Lovelace") != User(2, "Ada", "Lovelace")

    def test_ordering_by_id_first(self):
        users = [User(3, "A", "A"), User(1, "Z", "Z"), User(2, "M", "M")]

        assert [u.id for u in sorted(users)] == [1, 2, 3]

    def test_ordering_ties_broken_by_name_then_surname(self):
        users = [User(1, "B", "A"), User(1, "A", "B"), User(1, "A", "A")]

        assert sorted(users) == [User(1, "A", "A"), User(1, "A", "B"), User(1, "B", "A")]

    def test_frozen(self):
        user = User(1, "Ada", "Lovelace")

        with pytest.raises(AttributeError):
            user.name = "Grace"

    def test_to_dict(self):
        assert User(7, "Ada", "Lovelace").to_dict() == {
            "id": 7,
            "name": "Ada",
            "surname": "Lovelace",
        }


class TestResponses:
    """Tests for response models."""

    def test_get_users_to_dict(self):
        response = GetUsersResponse(users=[User(1, "Ada", "Lovelace")], count=1)

        assert response.to_dict() == {
            "users": [{"id": 1, "name": "Ada", "surname": "Lovelace"}],
            "count": 1,
        }

    def test_batch_to_dict(self):
        response = GetUsersBatchResponse(users=[], offset=10, limit=5)

        assert response.to_dict() == {"users": [], "offset": 10, "limit": 5}

    def test_health_to_dict(self):
        response = HealthResponse(
            healthy=True, version="0.1.0", components={"storage": "healthy"}
        )

        assert response.to_dict() == {
            "healthy": True,
            "version": "0.1.0",
            "components": {"storage": "healthy"},
        }

import pytest

import manage_users
from blog.models.user import User


@pytest.fixture
def alice(register):
    return register("alice")


def fetch(db, username):
    return db.query(User).filter(User.username == username).first()


def test_grant_and_revoke_role(db, alice):
    assert manage_users.grant_role("alice", "moderator") is True
    assert fetch(db, "alice").roles == ["user", "moderator"]

    db.expire_all()
    assert manage_users.revoke_role("alice", "moderator") is True
    db.expire_all()
    assert fetch(db, "alice").roles == ["user"]


def test_grant_unknown_role_or_user(capsys, alice):
    assert manage_users.grant_role("alice", "superuser") is False
    assert manage_users.grant_role("nobody", "admin") is False
    assert "not found" in capsys.readouterr().out


def test_last_role_cannot_be_revoked(alice):
    assert manage_users.revoke_role("alice", "user") is False


def test_deactivate_and_activate(client, db, alice):
    assert manage_users.set_active("alice", False) is True
    assert client.get("/api/auth/profile", headers=alice["headers"]).status_code == 401
    assert fetch(db, "alice").refresh_token_hash is None

    assert manage_users.set_active("alice", True) is True
    assert client.get("/api/auth/profile", headers=alice["headers"]).status_code == 200


def test_list_prints_users(capsys, alice):
    users = manage_users.list_users()

    assert [u.username for u in users] == ["alice"]
    assert "alice@mail.com" in capsys.readouterr().out


def test_main_dispatches_commands(capsys, alice):
    assert manage_users.main(["manage_users.py"]) == 1
    assert manage_users.main(["manage_users.py", "--grant", "alice"]) == 1
    assert manage_users.main(["manage_users.py", "--grant", "alice", "admin"]) == 0
    assert manage_users.main(["manage_users.py", "--deactivate", "ghost"]) == 1
    assert manage_users.main(["manage_users.py", "--bogus"]) == 1
    assert "Unknown command" in capsys.readouterr().out

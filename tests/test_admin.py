import pytest

from auth_service.admin import AdminService, clamp_pagination, seed_admin
from auth_service.errors import (
    Conflict,
    NotFound,
    SelfDeletionForbidden,
    SelfDemotionForbidden,
    Unauthorized,
)
from auth_service.hashing import verify_password
from auth_service.reset_tokens import ResetTokenStore
from auth_service.schemas import AdminCreateData, AdminUpdateData


@pytest.fixture
def service(db, clock):
    return AdminService(db, clock=clock)


@pytest.fixture
def admin(make_account):
    return make_account(email="root@x.com", username="root", is_admin=True)


def _new_user(**overrides):
    data = dict(email="c@x.com", username="carol", password="password123")
    data.update(overrides)
    return AdminCreateData(**data)


def test_non_admin_is_refused_everywhere(service, make_account, claims_for):
    user = make_account()
    claims = claims_for(user)

    with pytest.raises(Unauthorized):
        service.list_users(claims)
    with pytest.raises(Unauthorized):
        service.get_user(claims, user.id)
    with pytest.raises(Unauthorized):
        service.create_user(claims, _new_user())
    with pytest.raises(Unauthorized):
        service.update_user(claims, user.id, AdminUpdateData(first_name="x"))
    with pytest.raises(Unauthorized):
        service.delete_user(claims, user.id)


def test_page_past_the_end_is_empty(service, admin, make_account, claims_for):
    make_account()

    page = service.list_users(claims_for(admin), page=5, limit=5)

    assert page.users == []
    assert page.total == 2
    assert page.total_pages == 1
    assert page.page == 5


def test_list_users_pages_in_id_order(service, admin, make_account, claims_for):
    for i in range(4):
        make_account(email=f"u{i}@x.com", username=f"user{i}")

    first = service.list_users(claims_for(admin), page=1, limit=2)
    third = service.list_users(claims_for(admin), page=3, limit=2)

    assert [u.username for u in first.users] == ["root", "user0"]
    assert [u.username for u in third.users] == ["user3"]
    assert first.total == 5
    assert first.total_pages == 3


@pytest.mark.parametrize(
    "page, limit, expected",
    [
        (None, None, (1, 10)),
        (0, 500, (1, 100)),
        (-3, -1, (1, 1)),
        (None, 0, (1, 1)),
        (0, 0, (1, 1)),
        (4, 25, (4, 25)),
    ],
)
def test_pagination_is_clamped(page, limit, expected):
    assert clamp_pagination(page, limit) == expected


def test_get_user(service, admin, make_account, claims_for):
    user = make_account()
    assert service.get_user(claims_for(admin), user.id).email == "a@x.com"
    with pytest.raises(NotFound):
        service.get_user(claims_for(admin), 999)


def test_create_user_defaults(service, admin, claims_for, db):
    created = service.create_user(claims_for(admin), _new_user())

    assert created.is_admin is False
    assert created.is_active is True
    assert created.email_verified is False


def test_create_user_with_flags_and_hashed_password(service, admin, claims_for, db):
    from auth_service.models import Account

    created = service.create_user(
        claims_for(admin),
        _new_user(email="C@X.com", is_admin=True, is_active=False, email_verified=True),
    )

    assert created.email == "c@x.com"
    assert (created.is_admin, created.is_active, created.email_verified) == (True, False, True)
    stored = db.get(Account, created.id)
    assert stored.password_hash.startswith("$pbkdf2-sha512$")
    assert verify_password("password123", stored.password_hash)


def test_create_user_conflicts(service, admin, make_account, claims_for):
    make_account()
    with pytest.raises(Conflict) as excinfo:
        service.create_user(claims_for(admin), _new_user(email="a@x.com"))
    assert excinfo.value.field == "email"
    with pytest.raises(Conflict) as excinfo:
        service.create_user(claims_for(admin), _new_user(username="alice"))
    assert excinfo.value.field == "username"


def test_admin_cannot_demote_self(service, admin, claims_for):
    with pytest.raises(SelfDemotionForbidden):
        service.update_user(claims_for(admin), admin.id, AdminUpdateData(is_admin=False))


def test_admin_can_edit_self_without_demotion(service, admin, claims_for):
    updated = service.update_user(
        claims_for(admin), admin.id, AdminUpdateData(is_admin=True, first_name="Root")
    )
    assert updated.is_admin is True
    assert updated.first_name == "Root"


def test_update_other_user_flags(service, admin, make_account, claims_for, clock):
    user = make_account()
    later = clock.advance(minutes=1)

    updated = service.update_user(
        claims_for(admin),
        user.id,
        AdminUpdateData(is_admin=True, is_active=False, email_verified=True),
    )

    assert (updated.is_admin, updated.is_active, updated.email_verified) == (True, False, True)
    assert updated.updated_at == later


def test_update_user_conflicts_only_with_other_accounts(service, admin, make_account, claims_for):
    user = make_account()

    same = service.update_user(claims_for(admin), user.id, AdminUpdateData(email="a@x.com"))
    assert same.email == "a@x.com"

    with pytest.raises(Conflict) as excinfo:
        service.update_user(claims_for(admin), user.id, AdminUpdateData(username="root"))
    assert excinfo.value.field == "username"


def test_update_missing_user(service, admin, claims_for):
    with pytest.raises(NotFound):
        service.update_user(claims_for(admin), 999, AdminUpdateData(first_name="x"))


def test_admin_cannot_delete_self(service, admin, claims_for):
    with pytest.raises(SelfDeletionForbidden):
        service.delete_user(claims_for(admin), admin.id)


def test_delete_missing_user(service, admin, claims_for):
    with pytest.raises(NotFound):
        service.delete_user(claims_for(admin), 999)


def test_delete_cascades_to_reset_tokens(service, admin, make_account, claims_for, db):
    user = make_account()
    store = ResetTokenStore(db)
    token = store.issue_for(user.id).token
    store.issue_for(user.id)
    db.commit()

    assert service.delete_user(claims_for(admin), user.id).success is True

    assert store.list_for(user.id) == []
    assert store.get(token) is None
    with pytest.raises(NotFound):
        service.get_user(claims_for(admin), user.id)


def test_seed_admin_is_idempotent(db):
    created = seed_admin(db, "Admin@Example.com", "adminuser", "adminpassword123")

    assert created.is_admin and created.is_active and created.email_verified
    assert created.email == "admin@example.com"
    assert seed_admin(db, "admin@example.com", "adminuser", "adminpassword123") is None

from types import SimpleNamespace
from uuid import uuid4

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from clinic_api.errors import Forbidden, TenantContextMissing
from clinic_api.models.clinic import Clinic
from clinic_api.services.context import RequestContext
from clinic_api.services.principals import SuperAdminPrincipal, UserPrincipal
from clinic_api.services.tenant_scope import (
    apply_tenant_scope,
    attach_tenant,
    can_access_tenant,
    ensure_tenant_access,
    tenant_scoped_filter,
)

from factories import create_clinic, create_tenant

TENANT_A = uuid4()
TENANT_B = uuid4()


def _user_ctx(tenant_id=TENANT_A, role: str = "admin") -> RequestContext:
    principal = UserPrincipal(id=uuid4(), email="u@clinic.com", role=role, home_tenant_id=tenant_id)
    return RequestContext(principal=principal, tenant_id=tenant_id)


def _super_ctx(tenant_view=None) -> RequestContext:
    return RequestContext(principal=SuperAdminPrincipal(id=uuid4(), email="root@platform.com"), tenant_id=tenant_view)


@pytest.mark.parametrize(
    "criteria",
    [
        {},
        {"status": "active"},
        {"tenant_id": TENANT_B},
        {"tenant_id": None, "name": "x"},
    ],
)
def test_scoped_filter_always_pins_caller_tenant(criteria: dict):
    result = tenant_scoped_filter(_user_ctx(), **criteria)

    assert result["tenant_id"] == TENANT_A
    for key, value in criteria.items():
        if key != "tenant_id":
            assert result[key] == value


def test_scoped_filter_without_tenant_fails():
    with pytest.raises(TenantContextMissing):
        tenant_scoped_filter(_user_ctx(tenant_id=None))


def test_super_admin_filter_is_unscoped_by_default():
    assert tenant_scoped_filter(_super_ctx(), status="active") == {"status": "active"}
    assert tenant_scoped_filter(_super_ctx(), tenant_id=TENANT_B) == {"tenant_id": TENANT_B}


def test_super_admin_tenant_view_applies_filter():
    assert tenant_scoped_filter(_super_ctx(TENANT_B), status="active") == {"status": "active", "tenant_id": TENANT_B}


def test_can_access_tenant():
    assert can_access_tenant(_user_ctx(), TENANT_A)
    assert not can_access_tenant(_user_ctx(), TENANT_B)
    assert not can_access_tenant(_user_ctx(), None)
    assert can_access_tenant(_super_ctx(), TENANT_B)


def test_ensure_tenant_access_rejects_foreign_record():
    record = SimpleNamespace(tenant_id=TENANT_B)
    with pytest.raises(Forbidden):
        ensure_tenant_access(_user_ctx(), record)
    assert ensure_tenant_access(_super_ctx(), record) is record


def test_ensure_tenant_access_requires_tenant_context():
    record = SimpleNamespace(tenant_id=TENANT_A)
    with pytest.raises(TenantContextMissing):
        ensure_tenant_access(_user_ctx(tenant_id=None), record)


def test_attach_tenant_overrides_payload_tenant():
    assert attach_tenant(_user_ctx(), {"name": "x", "tenant_id": TENANT_B}) == {"name": "x", "tenant_id": TENANT_A}
    assert attach_tenant(_super_ctx(), {"tenant_id": TENANT_B}) == {"tenant_id": TENANT_B}
    with pytest.raises(TenantContextMissing):
        attach_tenant(_user_ctx(tenant_id=None), {"name": "x"})


def test_apply_tenant_scope_limits_query(db_session: Session):
    tenant_a = create_tenant(db_session, slug="scope-a")
    tenant_b = create_tenant(db_session, slug="scope-b")
    create_clinic(db_session, tenant_a, code="A1")
    create_clinic(db_session, tenant_a, code="A2")
    create_clinic(db_session, tenant_b, code="B1")
    db_session.commit()

    own = db_session.execute(apply_tenant_scope(select(Clinic), Clinic, _user_ctx(tenant_a.id))).scalars().all()
    every = db_session.execute(apply_tenant_scope(select(Clinic), Clinic, _super_ctx())).scalars().all()
    viewed = db_session.execute(apply_tenant_scope(select(Clinic), Clinic, _super_ctx(tenant_b.id))).scalars().all()

    assert {clinic.code for clinic in own} == {"A1", "A2"}
    assert len(every) == 3
    assert [clinic.code for clinic in viewed] == ["B1"]

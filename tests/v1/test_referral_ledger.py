# tests/v1/test_referral_ledger.py
import pytest

from app.models.enums import MilestoneStatus, ReferralStatus, Role
from app.models.payment import MilestonePayment
from app.models.referral import ReferralTracking
from app.services import referral as referral_service
from tests.helpers import headers_for


@pytest.mark.parametrize(
    "commission, paid_out, total, paid, expected",
    [
        (100, 0, 0, 50, (0, 100, 0)),       # zero total: nothing available
        (100, 0, 200, 200, (100, 0, 100)),  # fully paid order
        (100, 40, 200, 100, (10, 50, 50)),  # half paid, part already paid out
        (100, 0, 200, 300, (100, 0, 100)),  # overpayment is clamped
        (100, 80, 200, 100, (0, 50, 50)),   # paid out more than the available share
    ],
)
def test_commission_breakdown(commission, paid_out, total, paid, expected):
    breakdown = referral_service.calculate_commission_breakdown(commission, paid_out, total, paid)

    assert breakdown.available == pytest.approx(expected[0])
    assert breakdown.pending == pytest.approx(expected[1])
    assert breakdown.available_total == pytest.approx(expected[2])
    assert breakdown.available >= 0
    assert breakdown.pending >= 0


def test_breakdown_splits_the_unpaid_commission():
    for commission in (0, 10, 100, 333.33):
        for total in (0, 50, 200):
            for paid in (0, 25, 100, 200, 400):
                available_total = referral_service.calculate_commission_breakdown(commission, 0, total, paid).available_total
                for paid_out in (0, available_total / 2, available_total):
                    breakdown = referral_service.calculate_commission_breakdown(commission, paid_out, total, paid)

                    assert breakdown.available + breakdown.pending == pytest.approx(commission - paid_out)
                    assert breakdown.available >= 0
                    assert breakdown.pending >= 0


def test_signup_tracking_is_created_once(db_session, make_user):
    referrer = make_user(Role.PARTNER)
    referred = make_user()

    first = referral_service.ensure_referral_signup(db_session, referrer.id, referred.id)
    second = referral_service.ensure_referral_signup(db_session, referrer.id, referred.id)
    db_session.commit()

    assert first.id == second.id
    rows = db_session.query(ReferralTracking).filter_by(referrer_id=referrer.id).all()
    assert len(rows) == 1
    assert rows[0].order_id is None
    assert rows[0].status == ReferralStatus.PENDING
    assert float(rows[0].commission_amount) == 0


def test_signup_tracking_is_found_after_status_change(db_session, make_user):
    referrer = make_user(Role.PARTNER)
    referred = make_user()
    first = referral_service.ensure_referral_signup(db_session, referrer.id, referred.id)
    first.status = ReferralStatus.EARNED
    db_session.commit()

    again = referral_service.ensure_referral_signup(db_session, referrer.id, referred.id)

    assert again is not None
    assert again.id == first.id
    assert db_session.query(ReferralTracking).filter_by(referrer_id=referrer.id).count() == 1


def test_self_referral_creates_nothing(db_session, make_user):
    user = make_user()

    assert referral_service.ensure_referral_signup(db_session, user.id, user.id) is None
    assert db_session.query(ReferralTracking).count() == 0


def test_unknown_referrer_is_ignored(db_session, make_user):
    user = make_user()

    assert referral_service.ensure_referral_signup(db_session, 9999, user.id) is None
    assert db_session.query(ReferralTracking).count() == 0


def test_order_commission_is_created_once(db_session, make_user, make_project):
    referrer = make_user(Role.PARTNER, referral_commission_rate=0.2)
    referred = make_user(referred_by_id=referrer.id)
    project = make_project(referred, total_amount=500)

    first = referral_service.create_referral_commission_for_order(db_session, project.order_id, referred.id, 500)
    second = referral_service.create_referral_commission_for_order(db_session, project.order_id, referred.id, 500)
    db_session.commit()

    assert first.id == second.id
    rows = db_session.query(ReferralTracking).filter_by(order_id=project.order_id).all()
    assert len(rows) == 1
    assert rows[0].status == ReferralStatus.EARNED
    assert float(rows[0].commission_amount) == 100
    assert rows[0].commission_rate == 0.2


def test_no_commission_without_referrer(db_session, make_user, make_project):
    user = make_user()
    project = make_project(user)

    assert referral_service.create_referral_commission_for_order(db_session, project.order_id, user.id, 1000) is None
    assert db_session.query(ReferralTracking).count() == 0


def test_payout_moves_only_the_available_share(db_session, make_user, make_project):
    referrer = make_user(Role.PARTNER, referral_commission_rate=0.1)
    referred = make_user(referred_by_id=referrer.id)
    project = make_project(referred, total_amount=1000)
    referral_service.create_referral_commission_for_order(db_session, project.order_id, referred.id, 1000)
    db_session.add(MilestonePayment(project_id=project.id, label="Deposit", amount=500, status=MilestoneStatus.APPROVED))
    db_session.add(MilestonePayment(project_id=project.id, label="Final", amount=500, status=MilestoneStatus.PENDING))
    db_session.commit()

    summary = referral_service.build_referral_summary(db_session, referrer)
    assert summary.earned == 100
    assert summary.available == 50
    assert summary.pending == 50
    assert summary.referrals == 1

    after = referral_service.request_payout(db_session, referrer)
    assert after.paid_out == 50
    assert after.available == 0
    assert after.pending == 50
    assert after.items[0].status == ReferralStatus.EARNED


async def test_referral_summary_endpoint(client, db_session, make_user):
    referrer = make_user(Role.PARTNER, referral_code="partner1")
    referred = make_user(referred_by_id=referrer.id)
    referral_service.ensure_referral_signup(db_session, referrer.id, referred.id)
    db_session.commit()

    response = await client.get("/api/v1/referrals", headers=headers_for(referrer))

    assert response.status_code == 200
    data = response.json()
    assert data["code"] == "partner1"
    assert data["link"].endswith("/?ref=partner1")
    assert data["referrals"] == 1
    assert data["earned"] == 0


async def test_admin_referral_list_requires_admin(client, client_headers, admin_auth_headers):
    forbidden = await client.get("/api/v1/admin/referrals", headers=client_headers)
    allowed = await client.get("/api/v1/admin/referrals", headers=admin_auth_headers)

    assert forbidden.status_code == 403
    assert allowed.status_code == 200
    assert allowed.json() == []

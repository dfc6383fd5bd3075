"""
Unit tests for UserSession.

Validates that:
- every replacement is published to subscribers
- a re-entrant gesture for the same action kind cannot consume twice
- upgrade and payment flows replace the current record
"""

import pytest
from datetime import timedelta

from tradegenie.domain.credits import GateReason
from tradegenie.domain.user import PlanType, SubscriptionStatus
from tradegenie.services import UserSession


@pytest.fixture
def session(test_settings):
    return UserSession(settings=test_settings)


@pytest.fixture
def trial_session(session, sample_identity, now):
    session.sign_in(sample_identity, is_trial_signup=True, now=now)
    return session


class TestPublishOnReplace:
    """Subscribers see every new record."""

    def test_sign_in_publishes(self, session, sample_identity, now):
        seen = []
        session.subscribe(seen.append)

        user = session.sign_in(sample_identity, is_trial_signup=True, now=now)

        assert seen == [user]
        assert session.user is user

    def test_unsubscribe(self, session, sample_identity, now):
        seen = []
        unsubscribe = session.subscribe(seen.append)
        unsubscribe()

        session.sign_in(sample_identity, is_trial_signup=True, now=now)
        assert seen == []

    def test_sign_out_publishes_none(self, trial_session):
        seen = []
        trial_session.subscribe(seen.append)

        trial_session.sign_out()

        assert seen == [None]
        assert trial_session.user is None

    def test_unchanged_record_not_republished(self, trial_session, now):
        seen = []
        trial_session.subscribe(seen.append)

        trial_session.refresh(now=now)

        assert seen == []


class TestUseCredits:
    """Gated actions through the session."""

    def test_allowed_action_replaces_record(self, trial_session, now):
        result = trial_session.use_credits("document_generation", now=now)

        assert result.allowed is True
        assert trial_session.user.credits_used == 5
        assert trial_session.credits_info().credits == 5

    def test_denied_action_signals_payment(self, trial_session, now):
        trial_session.use_credits("document_generation", now=now)
        trial_session.use_credits("document_generation", now=now)

        result = trial_session.use_credits("risk_analysis", now=now)

        assert result.allowed is False
        assert result.payment_required is True
        assert trial_session.user.credits_used == 10

    def test_reentrant_gesture_denied(self, trial_session, now):
        inner_results = []

        def double_trigger():
            inner_results.append(trial_session.use_credits("risk_analysis", now=now))

        outer = trial_session.use_credits("risk_analysis", double_trigger, now=now)

        assert outer.allowed is True
        assert inner_results[0].allowed is False
        assert inner_results[0].reason == GateReason.IN_PROGRESS
        assert trial_session.user.credits_used == 3

    def test_guard_released_after_gesture(self, trial_session, now):
        trial_session.use_credits("risk_analysis", now=now)
        second = trial_session.use_credits("risk_analysis", now=now)

        assert second.allowed is True
        assert trial_session.user.credits_used == 6

    def test_failing_action_keeps_credits_consumed(self, trial_session, now):
        def failing_action():
            raise RuntimeError("generation failed")

        with pytest.raises(RuntimeError):
            trial_session.use_credits("risk_analysis", failing_action, now=now)

        assert trial_session.user.credits_used == 3
        assert trial_session.use_credits("risk_analysis", now=now).allowed is True

    def test_other_action_kinds_not_blocked(self, trial_session, now):
        inner_results = []

        def chat_during_analysis():
            inner_results.append(trial_session.use_credits("chat_message", now=now))

        trial_session.use_credits("risk_analysis", chat_during_analysis, now=now)

        assert inner_results[0].allowed is True
        assert trial_session.user.credits_used == 4

    def test_signed_out_is_unmetered(self, session, now):
        result = session.use_credits("chat_message", now=now)

        assert result.allowed is True
        assert result.reason == GateReason.UNMETERED


class TestStatusAndUpgrade:
    """Derived status and upgrade flows through the session."""

    def test_trial_status(self, trial_session, now):
        status = trial_session.trial_status(now=now + timedelta(days=13, hours=1))

        assert status.days_remaining == 1
        assert status.ends_soon is True

    def test_expire_if_lapsed(self, trial_session, now):
        trial_session.expire_if_lapsed(now=now + timedelta(days=15))
        assert trial_session.user.subscription_status == SubscriptionStatus.EXPIRED

    def test_request_upgrade_direct(self, trial_session, now):
        decision = trial_session.request_upgrade(now=now)

        assert decision.payment_required is False
        assert trial_session.user.is_active

    def test_request_upgrade_needs_payment_then_completes(self, trial_session, now):
        trial_session.use_credits("document_generation", now=now)
        trial_session.use_credits("document_generation", now=now)

        decision = trial_session.request_upgrade(now=now)
        assert decision.payment_required is True
        assert trial_session.user.is_trial

        user = trial_session.complete_payment("enterprise")
        assert user.is_active
        assert user.plan_type == PlanType.ENTERPRISE
        assert trial_session.use_credits("document_generation", now=now).reason == GateReason.UNMETERED

    def test_request_upgrade_signed_out(self, session):
        assert session.request_upgrade() is None
        assert session.complete_payment("professional") is None

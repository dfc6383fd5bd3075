"""
User Session

Holds the current user record for one client and is the single place that
replaces it. Subscribers are notified on every replacement so that every
view re-derives trial and credit status from the latest record.

Gated actions are serialized per action kind: while one gesture for a kind
is between admission and replacement, another attempt for the same kind is
denied instead of consuming against a stale credit baseline.
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Iterator, List, Optional, Set

from tradegenie.config.settings import Settings, get_settings
from tradegenie.domain.credits import (
    GateReason,
    GateResult,
    attempt_gated_action,
    cost_of,
    credit_level,
    credits_info,
)
from tradegenie.domain.subscription import (
    UpgradeDecision,
    request_upgrade,
    upgrade_after_payment,
)
from tradegenie.domain.trial import (
    IdentityInput,
    create_user,
    evaluate_trial,
    expire_trial,
    refresh_trial_days,
)
from tradegenie.domain.user import CreditLevel, CreditsInfo, TrialStatus, UserProfile


logger = logging.getLogger(__name__)

Listener = Callable[[Optional[UserProfile]], None]


class UserSession:
    """
    Explicit current-user context for a single client.
    
    Domain functions stay pure; this class only sequences them and
    publishes the resulting records.
    """
    
    def __init__(self, settings: Optional[Settings] = None):
        self._settings = settings or get_settings()
        self._user: Optional[UserProfile] = None
        self._listeners: List[Listener] = []
        self._in_flight: Set[str] = set()
    
    @property
    def user(self) -> Optional[UserProfile]:
        return self._user
    
    # =========================================================================
    # Publish-on-replace
    # =========================================================================
    
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener. Returns a callable that unsubscribes it."""
        self._listeners.append(listener)
        
        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)
        
        return unsubscribe
    
    def replace(self, user: Optional[UserProfile]) -> None:
        """Adopt `user` as the current record and notify subscribers."""
        if user is self._user:
            return
        self._user = user
        for listener in list(self._listeners):
            listener(user)
    
    # =========================================================================
    # Sign in / out
    # =========================================================================
    
    def sign_in(
        self,
        identity_result: IdentityInput,
        is_trial_signup: bool = False,
        *,
        now: Optional[datetime] = None,
    ) -> UserProfile:
        user = create_user(identity_result, is_trial_signup, now=now, settings=self._settings)
        self.replace(user)
        return user
    
    def sign_out(self) -> None:
        self._in_flight.clear()
        self.replace(None)
    
    # =========================================================================
    # Derived status
    # =========================================================================
    
    def trial_status(self, *, now: Optional[datetime] = None) -> Optional[TrialStatus]:
        return evaluate_trial(self._user, now=now, settings=self._settings)
    
    def credits_info(self) -> CreditsInfo:
        return credits_info(self._user)
    
    def credit_level(self) -> CreditLevel:
        return credit_level(self._user, settings=self._settings)
    
    def refresh(self, *, now: Optional[datetime] = None) -> None:
        """Bring the cached trial_days_remaining up to date."""
        if self._user is not None:
            self.replace(refresh_trial_days(self._user, now=now))
    
    def expire_if_lapsed(self, *, now: Optional[datetime] = None) -> None:
        if self._user is not None:
            self.replace(expire_trial(self._user, now=now))
    
    # =========================================================================
    # Gated actions
    # =========================================================================
    
    @contextmanager
    def _gesture(self, action_kind: str) -> Iterator[bool]:
        if action_kind in self._in_flight:
            yield False
            return
        self._in_flight.add(action_kind)
        try:
            yield True
        finally:
            self._in_flight.discard(action_kind)
    
    def use_credits(
        self,
        action_kind: str,
        action: Optional[Callable[[], object]] = None,
        *,
        now: Optional[datetime] = None,
    ) -> GateResult:
        """
        Gate one user gesture on the credit meter.
        
        Args:
            action_kind: Key into the credit-cost table
            action: Optional callable run after admission, before the guard
                for this action kind is released. Credits are already
                consumed and the new record published when it runs, so an
                action that raises does not refund them
            now: Evaluation time (defaults to the current UTC time)
            
        Returns:
            GateResult; `payment_required` tells the UI to open the payment
            surface
        """
        with self._gesture(action_kind) as admitted:
            if not admitted:
                logger.warning(f"Ignoring re-entrant {action_kind} while one is in progress")
                return GateResult(
                    allowed=False,
                    user=self._user,
                    cost=cost_of(action_kind, settings=self._settings),
                    reason=GateReason.IN_PROGRESS,
                )
            
            result = attempt_gated_action(
                self._user, action_kind, now=now, settings=self._settings
            )
            if result.allowed:
                self.replace(result.user)
                if action is not None:
                    action()
            return result
    
    # =========================================================================
    # Upgrades
    # =========================================================================
    
    def request_upgrade(self, *, now: Optional[datetime] = None) -> Optional[UpgradeDecision]:
        """Upgrade directly or report that payment is needed. None when signed out."""
        if self._user is None:
            return None
        decision = request_upgrade(self._user, now=now, settings=self._settings)
        self.replace(decision.user)
        return decision
    
    def complete_payment(self, plan: str) -> Optional[UserProfile]:
        """Apply a payment-success signal for `plan`."""
        if self._user is None:
            logger.warning(f"Payment success for plan {plan} with no signed-in user")
            return None
        self.replace(upgrade_after_payment(self._user, plan, settings=self._settings))
        return self._user

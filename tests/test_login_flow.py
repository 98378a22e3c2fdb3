# tests/test_login_flow.py
# How to run:
#   pytest -q
#
# Verifies:
#   - successful login scores against the stored baseline, then overwrites it
#   - failed logins reset the collector and leave the profile untouched
#   - store failures surface as "Unexpected error", never as exceptions
#   - signup / logout maintain the explicit session object
#   - signup never takes over an existing username
#   - only the fixed admin account gets the admin role

from app.analytics.features import FeatureVector, DEFAULT_BASELINE
from app.analytics.risk_scorer import RiskLevel
from app.analytics.signal_collector import SignalCollector
from app.controller.login_flow import (
    LoginFlow, LoginResult, StaticCredentialChecker, ERR_CREDENTIALS, ERR_MFA, ERR_UNEXPECTED, ERR_SIGNUP, ERR_TAKEN,
)
from app.controller.session_state import AuthSession
from app.profile.store import MemoryProfileStore, ProfileCorrupted

USER, PASSWORD, MFA = "admin@syncbridge.com", "SecurePass123!", "123456"

def make_flow(store=None):
    store = store or MemoryProfileStore()
    session = AuthSession()
    return LoginFlow(StaticCredentialChecker(), store, session), store, session

def fast_typist() -> SignalCollector:
    col = SignalCollector()
    for t in (0, 100, 200):           # 100 ms intervals, baseline is 150
        col.on_key_event(t_ms=t)
    for t in (0, 100, 200):
        col.on_password_key_event(t_ms=t)
    for i in range(20):
        col.on_pointer_move(i * 10, 0)
    return col

def test_first_login_scores_against_defaults_and_stores_vector():
    flow, store, session = make_flow()
    col = fast_typist()
    expected = col.derive_feature_vector()

    result = flow.login(USER, PASSWORD, MFA, col)

    assert result.success and result.error is None
    assert result.verdict.level == RiskLevel.MEDIUM
    assert result.baseline == DEFAULT_BASELINE
    assert result.features == expected
    assert store.fetch_baseline("admin") == expected
    snap = session.get_current()
    assert snap.logged_in and snap.user_id == "admin"
    assert snap.profile["securityScore"]["score"] == "Medium Risk"

def test_repeat_login_with_same_behaviour_is_low():
    flow, store, _ = make_flow()
    flow.login(USER, PASSWORD, MFA, fast_typist())
    result = flow.login(USER, PASSWORD, MFA, fast_typist())
    assert result.verdict.level == RiskLevel.LOW
    assert result.verdict.risk_factors == 0

def test_collector_is_reset_after_success():
    flow, _, _ = make_flow()
    col = fast_typist()
    flow.login(USER, PASSWORD, MFA, col)
    assert col.derive_feature_vector() == FeatureVector()

def test_bad_password_resets_collector_and_keeps_profile():
    flow, store, session = make_flow()
    store.create_profile("admin", USER)
    col = fast_typist()
    result = flow.login(USER, "wrong", MFA, col)
    assert not result.success
    assert result.error == ERR_CREDENTIALS
    assert col.derive_feature_vector() == FeatureVector()
    assert store.fetch_baseline("admin") == DEFAULT_BASELINE
    assert not session.logged_in

def test_bad_mfa_is_rejected():
    flow, store, _ = make_flow()
    col = fast_typist()
    result = flow.login(USER, PASSWORD, "000000", col)
    assert result.error == ERR_MFA
    assert store.get_profile("admin") is None
    assert col.derive_feature_vector() == FeatureVector()

class BrokenStore(MemoryProfileStore):
    def _load(self, user_id):
        raise ProfileCorrupted(user_id)

def test_store_failure_is_reported_not_raised():
    flow, _, session = make_flow(BrokenStore())
    col = fast_typist()
    result = flow.login(USER, PASSWORD, MFA, col)
    assert result == LoginResult(False, ERR_UNEXPECTED)
    assert not session.logged_in
    assert col.derive_feature_vector() == FeatureVector()

def test_signup_creates_default_profile_and_signs_in():
    flow, store, session = make_flow()
    result = flow.signup("new@example.com", "pw")
    assert result.success
    assert store.fetch_baseline(result.user_id) == DEFAULT_BASELINE
    assert session.get_current().user_id == result.user_id
    assert session.get_current().verdict is None

    # the new account can log in with the default MFA code
    flow.logout()
    login = flow.login("new@example.com", "pw", MFA, fast_typist())
    assert login.success and login.user_id == result.user_id

def test_signup_requires_credentials():
    flow, _, _ = make_flow()
    assert flow.signup("", "pw").error == ERR_SIGNUP

def test_logout_clears_session():
    flow, _, session = make_flow()
    flow.login(USER, PASSWORD, MFA, fast_typist())
    flow.logout()
    snap = session.get_current()
    assert not snap.logged_in and snap.user_id is None and snap.verdict is None

def test_signup_with_taken_username_is_refused():
    flow, store, session = make_flow()
    result = flow.signup(USER, "attacker")
    assert result == LoginResult(False, ERR_TAKEN)
    assert not session.logged_in
    assert store.get_profile("admin") is None

    # the real credentials still work
    login = flow.login(USER, PASSWORD, MFA, fast_typist())
    assert login.success and login.user_id == "admin"
    assert flow.login(USER, "attacker", MFA, fast_typist()).error == ERR_CREDENTIALS

def test_first_login_of_admin_gets_admin_role():
    flow, store, _ = make_flow()
    flow.login(USER, PASSWORD, MFA, fast_typist())
    assert store.get_profile("admin")["role"] == "admin"

def test_first_login_of_other_account_gets_new_user_role():
    checker = StaticCredentialChecker()
    user_id = checker.register("bob@example.com", "pw")   # no profile yet
    store, session = MemoryProfileStore(), AuthSession()
    flow = LoginFlow(checker, store, session)
    result = flow.login("bob@example.com", "pw", MFA, fast_typist())
    assert result.success
    assert store.get_profile(user_id)["role"] == "new_user"
    assert checker.role_for("admin") == "admin"

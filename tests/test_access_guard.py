from app.core.errors import ErrorKind
from app.core.security import TokenConfig, TokenEngine, UserRole
from app.services.access_guard import AccessGuard, SqlRoleStore

from .conftest import TEST_SECRET


class TestAuthorize:

    def test_valid_token_for_existing_account(self, db_session, token_engine, make_patient):
        patient = make_patient()
        guard = AccessGuard(token_engine, SqlRoleStore(db_session))

        decision = guard.authorize(token_engine.issue(patient.id, UserRole.PATIENT), UserRole.PATIENT)

        assert decision.allowed
        assert decision.user_id == patient.id
        assert decision.role == UserRole.PATIENT

    def test_every_role_checks_its_own_table(self, db_session, token_engine, make_admin, make_doctor):
        admin = make_admin()
        doctor = make_doctor()
        guard = AccessGuard(token_engine, SqlRoleStore(db_session))

        assert guard.authorize(token_engine.issue(admin.id, UserRole.ADMIN), UserRole.ADMIN).allowed
        assert guard.authorize(token_engine.issue(doctor.id, UserRole.DOCTOR), UserRole.DOCTOR).allowed

    def test_role_mismatch(self, db_session, token_engine, make_doctor):
        doctor = make_doctor()
        guard = AccessGuard(token_engine, SqlRoleStore(db_session))

        decision = guard.authorize(token_engine.issue(doctor.id, UserRole.DOCTOR), UserRole.PATIENT)

        assert not decision.allowed
        assert decision.error == ErrorKind.ROLE_MISMATCH

    def test_deleted_account_revokes_token(self, db_session, token_engine, make_patient):
        patient = make_patient()
        token = token_engine.issue(patient.id, UserRole.PATIENT)
        guard = AccessGuard(token_engine, SqlRoleStore(db_session))
        assert guard.authorize(token, UserRole.PATIENT).allowed

        db_session.delete(patient)
        db_session.commit()

        decision = guard.authorize(token, UserRole.PATIENT)
        assert not decision.allowed
        assert decision.error == ErrorKind.USER_NOT_FOUND

    def test_expired_token(self, db_session, clock, make_patient):
        patient = make_patient()
        engine = TokenEngine(TokenConfig(secret=TEST_SECRET, expiration_ms=1), clock=clock)
        token = engine.issue(patient.id, UserRole.PATIENT)
        clock.advance(milliseconds=1)

        decision = AccessGuard(engine, SqlRoleStore(db_session)).authorize(token, UserRole.PATIENT)

        assert not decision.allowed
        assert decision.error == ErrorKind.EXPIRED_TOKEN

    def test_garbage_token(self, db_session, token_engine):
        decision = AccessGuard(token_engine, SqlRoleStore(db_session)).authorize("junk", UserRole.ADMIN)

        assert not decision.allowed
        assert decision.error == ErrorKind.INVALID_TOKEN

    def test_refreshed_token_still_authorizes(self, db_session, token_engine, make_doctor):
        doctor = make_doctor()
        guard = AccessGuard(token_engine, SqlRoleStore(db_session))

        refreshed = token_engine.refresh(token_engine.issue(doctor.id, UserRole.DOCTOR))

        decision = guard.authorize(refreshed, UserRole.DOCTOR)
        assert decision.allowed
        assert decision.user_id == doctor.id


class TestAuthorizeForResource:

    def test_owner_allowed(self, db_session, token_engine, make_patient):
        patient = make_patient()
        guard = AccessGuard(token_engine, SqlRoleStore(db_session))
        token = token_engine.issue(patient.id, UserRole.PATIENT)

        assert guard.authorize_for_resource(token, UserRole.PATIENT, patient.id).allowed

    def test_other_owner_forbidden(self, db_session, token_engine, make_patient):
        alice = make_patient(name="Alice Moreau")
        bob = make_patient(name="Bob Chen")
        guard = AccessGuard(token_engine, SqlRoleStore(db_session))
        token = token_engine.issue(alice.id, UserRole.PATIENT)

        decision = guard.authorize_for_resource(token, UserRole.PATIENT, bob.id)
        assert not decision.allowed
        assert decision.error == ErrorKind.RESOURCE_OWNERSHIP_MISMATCH

        decision = guard.authorize_for_resource(token, UserRole.PATIENT, None)
        assert decision.error == ErrorKind.RESOURCE_OWNERSHIP_MISMATCH

    def test_authorization_failure_wins_over_ownership(self, db_session, token_engine, make_patient):
        patient = make_patient()
        guard = AccessGuard(token_engine, SqlRoleStore(db_session))
        token = token_engine.issue(patient.id, UserRole.PATIENT)

        decision = guard.authorize_for_resource(token, UserRole.DOCTOR, patient.id)
        assert decision.error == ErrorKind.ROLE_MISMATCH


class TestValidate:

    def test_uses_role_from_token(self, db_session, token_engine, make_admin):
        admin = make_admin()
        guard = AccessGuard(token_engine, SqlRoleStore(db_session))

        decision = guard.validate(token_engine.issue(admin.id, UserRole.ADMIN))
        assert decision.allowed
        assert decision.role == UserRole.ADMIN

    def test_invalid_token(self, db_session, token_engine):
        decision = AccessGuard(token_engine, SqlRoleStore(db_session)).validate("junk")
        assert not decision.allowed
        assert decision.error == ErrorKind.INVALID_TOKEN

    def test_role_store_lookups(self, db_session, make_admin, make_doctor, make_patient):
        store = SqlRoleStore(db_session)
        admin, doctor, patient = make_admin(), make_doctor(), make_patient()

        assert store.exists_admin(admin.id)
        assert store.exists_doctor(doctor.id)
        assert store.exists_patient(patient.id)
        assert not store.exists_patient(patient.id + 100)

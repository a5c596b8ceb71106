from datetime import date, timedelta

from sqlalchemy.exc import OperationalError

from app.core.errors import ErrorKind
from app.models import Appointment, AppointmentStatus
from app.schemas.appointment import AppointmentCreate, AppointmentUpdate
from app.services.appointment_service import AppointmentService

from .helpers import at

DAY = date(2030, 3, 4)


def failing_commit():
    raise OperationalError("COMMIT", {}, Exception("database is locked"))


class TestBook:

    def test_book_creates_scheduled_appointment(self, db_session, make_doctor, make_patient):
        doctor, patient = make_doctor(), make_patient()
        data = AppointmentCreate(doctor_id=doctor.id, patient_id=patient.id, appointment_time=at(DAY, 9))

        result = AppointmentService(db_session).book_appointment(data)

        assert result.success
        projection = result.data
        assert projection.status == AppointmentStatus.SCHEDULED.value
        assert projection.status_text == "Scheduled"
        assert projection.doctor_name == doctor.name
        assert projection.patient_email == patient.email
        assert projection.end_time == at(DAY, 10)
        assert projection.appointment_date == DAY

    def test_persistence_failure_is_reported(self, db_session, make_doctor, make_patient, monkeypatch):
        doctor, patient = make_doctor(), make_patient()
        data = AppointmentCreate(doctor_id=doctor.id, patient_id=patient.id, appointment_time=at(DAY, 9))
        monkeypatch.setattr(db_session, "commit", failing_commit)

        result = AppointmentService(db_session).book_appointment(data)

        assert not result.success
        assert result.error == ErrorKind.PERSISTENCE_FAILURE
        monkeypatch.undo()
        assert db_session.query(Appointment).count() == 0


class TestUpdate:

    def test_update_moves_appointment(self, db_session, make_doctor, make_patient, make_appointment):
        doctor, other_doctor, patient = make_doctor(), make_doctor(name="Dr. Femi Okoye"), make_patient()
        appointment = make_appointment(doctor, patient, at(DAY, 9))
        data = AppointmentUpdate(
            doctor_id=other_doctor.id,
            patient_id=patient.id,
            appointment_time=at(DAY, 15),
        )

        result = AppointmentService(db_session).update_appointment(appointment.id, data)

        assert result.success
        assert result.data.doctor_id == other_doctor.id
        assert result.data.appointment_time == at(DAY, 15)

    def test_update_missing(self, db_session, make_doctor, make_patient):
        data = AppointmentUpdate(doctor_id=1, patient_id=1, appointment_time=at(DAY, 9))
        result = AppointmentService(db_session).update_appointment(999, data)
        assert result.error == ErrorKind.APPOINTMENT_NOT_FOUND

    def test_update_cannot_change_patient(self, db_session, make_doctor, make_patient, make_appointment):
        doctor, owner, intruder = make_doctor(), make_patient(), make_patient(name="Bob Chen")
        appointment = make_appointment(doctor, owner, at(DAY, 9))
        data = AppointmentUpdate(doctor_id=doctor.id, patient_id=intruder.id, appointment_time=at(DAY, 9))

        result = AppointmentService(db_session).update_appointment(appointment.id, data)

        assert result.error == ErrorKind.CONFLICT
        db_session.refresh(appointment)
        assert appointment.patient_id == owner.id


class TestCancel:

    def test_owner_cancels(self, db_session, make_doctor, make_patient, make_appointment):
        patient = make_patient()
        appointment = make_appointment(make_doctor(), patient, at(DAY, 9))
        appointment_id = appointment.id

        result = AppointmentService(db_session).cancel_appointment(appointment_id, patient.id)

        assert result.success
        assert AppointmentService(db_session).get_appointment(appointment_id) is None

    def test_other_patient_forbidden(self, db_session, make_doctor, make_patient, make_appointment):
        owner, other = make_patient(), make_patient(name="Bob Chen")
        appointment = make_appointment(make_doctor(), owner, at(DAY, 9))
        service = AppointmentService(db_session)

        assert service.cancel_appointment(appointment.id, other.id).error == ErrorKind.RESOURCE_OWNERSHIP_MISMATCH
        assert service.cancel_appointment(appointment.id, None).error == ErrorKind.RESOURCE_OWNERSHIP_MISMATCH
        assert service.get_appointment(appointment.id) is not None

    def test_cancel_missing(self, db_session):
        result = AppointmentService(db_session).cancel_appointment(12345, 1)
        assert result.error == ErrorKind.APPOINTMENT_NOT_FOUND


class TestChangeStatus:

    def test_complete(self, db_session, make_doctor, make_patient, make_appointment):
        appointment = make_appointment(make_doctor(), make_patient(), at(DAY, 9))

        result = AppointmentService(db_session).change_status(appointment.id, AppointmentStatus.COMPLETED)

        assert result.success
        db_session.refresh(appointment)
        assert appointment.status == AppointmentStatus.COMPLETED.value
        assert appointment.status_text == "Completed"

    def test_completed_cannot_go_back(self, db_session, make_doctor, make_patient, make_appointment):
        appointment = make_appointment(
            make_doctor(), make_patient(), at(DAY, 9), status=AppointmentStatus.COMPLETED
        )

        result = AppointmentService(db_session).change_status(appointment.id, AppointmentStatus.SCHEDULED)

        assert result.error == ErrorKind.INVALID_TRANSITION

    def test_missing(self, db_session):
        result = AppointmentService(db_session).change_status(77, AppointmentStatus.COMPLETED)
        assert result.error == ErrorKind.APPOINTMENT_NOT_FOUND


class TestQueries:

    def test_doctor_day_with_patient_filter(self, db_session, make_doctor, make_patient, make_appointment):
        doctor = make_doctor()
        maria, bob = make_patient(name="Maria Lopez"), make_patient(name="Bob Chen")
        make_appointment(doctor, bob, at(DAY, 14))
        make_appointment(doctor, maria, at(DAY, 9))
        make_appointment(doctor, maria, at(DAY + timedelta(days=1), 9))
        service = AppointmentService(db_session)

        day = service.get_doctor_appointments(doctor.id, DAY)
        assert [a.patient_name for a in day] == ["Maria Lopez", "Bob Chen"]

        filtered = service.get_doctor_appointments(doctor.id, DAY, patient_name="bob")
        assert [a.patient_name for a in filtered] == ["Bob Chen"]

    def test_patient_appointments_by_status(self, db_session, make_doctor, make_patient, make_appointment):
        doctor, patient = make_doctor(), make_patient()
        make_appointment(doctor, patient, at(DAY, 9), status=AppointmentStatus.COMPLETED)
        make_appointment(doctor, patient, at(DAY, 15))
        service = AppointmentService(db_session)

        assert len(service.get_patient_appointments(patient.id)) == 2
        completed = service.get_patient_appointments(patient.id, status=AppointmentStatus.COMPLETED)
        assert [a.status_text for a in completed] == ["Completed"]


def failing_query(*args, **kwargs):
    raise OperationalError("SELECT", {}, Exception("database is down"))


class TestStorageFailures:

    def test_lifecycle_reads_report_persistence_failure(
        self, db_session, make_doctor, make_patient, make_appointment, monkeypatch
    ):
        doctor, patient = make_doctor(), make_patient()
        appointment = make_appointment(doctor, patient, at(DAY, 9))
        appointment_id = appointment.id
        service = AppointmentService(db_session)
        data = AppointmentUpdate(doctor_id=doctor.id, patient_id=patient.id, appointment_time=at(DAY, 15))
        monkeypatch.setattr(db_session, "query", failing_query)

        results = [
            service.update_appointment(appointment_id, data),
            service.cancel_appointment(appointment_id, patient.id),
            service.change_status(appointment_id, AppointmentStatus.COMPLETED),
        ]

        assert [r.error for r in results] == [ErrorKind.PERSISTENCE_FAILURE] * 3
        monkeypatch.undo()
        stored = service.get_appointment(appointment_id)
        assert stored.appointment_time == at(DAY, 9)
        assert stored.status == AppointmentStatus.SCHEDULED.value

    def test_booking_projection_failure_is_reported(
        self, db_session, make_doctor, make_patient, monkeypatch
    ):
        doctor, patient = make_doctor(), make_patient()
        data = AppointmentCreate(doctor_id=doctor.id, patient_id=patient.id, appointment_time=at(DAY, 9))
        monkeypatch.setattr(db_session, "query", failing_query)

        result = AppointmentService(db_session).book_appointment(data)

        assert result.error == ErrorKind.PERSISTENCE_FAILURE


class TestCompletedAppointments:

    def test_update_of_completed_appointment_rejected(
        self, db_session, make_doctor, make_patient, make_appointment
    ):
        doctor, patient = make_doctor(), make_patient()
        appointment = make_appointment(doctor, patient, at(DAY, 9), status=AppointmentStatus.COMPLETED)
        data = AppointmentUpdate(doctor_id=doctor.id, patient_id=patient.id, appointment_time=at(DAY, 15))

        result = AppointmentService(db_session).update_appointment(appointment.id, data)

        assert result.error == ErrorKind.INVALID_TRANSITION
        db_session.refresh(appointment)
        assert appointment.status == AppointmentStatus.COMPLETED.value
        assert appointment.appointment_time == at(DAY, 9)

from datetime import date, time

import pytest

from lab_attendance.engine.classifier import Classification
from lab_attendance.errors import RecordNotFoundError
from lab_attendance.models import NOT_LOGGED_IN_REMARK, AttendanceStatus
from lab_attendance.stores import AttendanceStore

DAY = date(2026, 10, 12)

ABSENT = Classification(status=AttendanceStatus.absent, remarks=NOT_LOGGED_IN_REMARK)


def present(hour=8, minute=5, pc="PC-03", time_out=None):
    return Classification(status=AttendanceStatus.present, time_in=time(hour, minute),
                          time_out=time_out, pc_identifier=pc)


@pytest.fixture
def store(database, clock):
    return AttendanceStore(database, clock)


def test_first_merge_inserts_verbatim(store):
    store.upsert_merged(1, 10, DAY, present())
    record = store.get_record(1, 10, DAY)
    assert record.status == "present"
    assert record.time_in == time(8, 5)
    assert record.pc_number == "PC-03"
    assert record.remarks is None
    assert record.is_archived is False


def test_merge_is_idempotent(store):
    store.upsert_merged(1, 10, DAY, present())
    first = store.get_record(1, 10, DAY)
    store.upsert_merged(1, 10, DAY, present())
    second = store.get_record(1, 10, DAY)
    for column in ("time_in", "time_out", "pc_number", "status", "remarks"):
        assert getattr(first, column) == getattr(second, column)


def test_time_in_is_sticky_when_no_login_found(store):
    store.upsert_merged(1, 10, DAY, present())
    store.upsert_merged(1, 10, DAY, ABSENT)
    record = store.get_record(1, 10, DAY)
    assert record.time_in == time(8, 5)
    assert record.pc_number == "PC-03"
    # a recorded login never reverts to absent
    assert record.status == "present"
    assert record.remarks is None


def test_new_login_time_replaces_old(store):
    store.upsert_merged(1, 10, DAY, present(8, 5))
    store.upsert_merged(1, 10, DAY, Classification(status=AttendanceStatus.late, time_in=time(9, 0)))
    record = store.get_record(1, 10, DAY)
    assert record.time_in == time(9, 0)
    assert record.status == "late"
    # empty pc keeps the stored one
    assert record.pc_number == "PC-03"


def test_time_out_kept_when_new_has_none(store):
    store.upsert_merged(1, 10, DAY, present(time_out=time(9, 50)))
    store.upsert_merged(1, 10, DAY, present())
    assert store.get_record(1, 10, DAY).time_out == time(9, 50)


def test_not_logged_in_remark_cleared_by_login(store):
    store.initialize_sheet(1, DAY, [10], actor_id=99)
    assert store.get_record(1, 10, DAY).remarks == NOT_LOGGED_IN_REMARK

    store.upsert_merged(1, 10, DAY, present())
    record = store.get_record(1, 10, DAY)
    assert record.remarks is None
    assert record.status == "present"


def test_manual_remark_survives_login(store):
    store.initialize_sheet(1, DAY, [10], actor_id=99)
    store.update_record(1, 10, DAY, status=AttendanceStatus.excused, remarks="Clinic pass")
    store.upsert_merged(1, 10, DAY, present())
    record = store.get_record(1, 10, DAY)
    assert record.remarks == "Clinic pass"
    # status always follows the fresh classification
    assert record.status == "present"


def test_manual_remark_survives_absent_rerun(store):
    store.initialize_sheet(1, DAY, [10], actor_id=99)
    store.update_record(1, 10, DAY, status=AttendanceStatus.excused, remarks="Clinic pass")
    store.upsert_merged(1, 10, DAY, ABSENT)
    record = store.get_record(1, 10, DAY)
    assert record.remarks == "Clinic pass"
    assert record.status == "absent"


def test_initialize_keeps_existing_data(store):
    store.upsert_merged(1, 10, DAY, present())
    store.initialize_sheet(1, DAY, [10, 11], actor_id=99)
    kept = store.get_record(1, 10, DAY)
    assert kept.time_in == time(8, 5)
    assert kept.status == "present"
    assert kept.remarks is None
    fresh = store.get_record(1, 11, DAY)
    assert fresh.status == "absent"
    assert fresh.remarks == NOT_LOGGED_IN_REMARK


def test_initialize_restores_blank_remark_without_login(store):
    store.initialize_sheet(1, DAY, [10], actor_id=99)
    store.update_record(1, 10, DAY, status=AttendanceStatus.absent, remarks="")
    store.initialize_sheet(1, DAY, [10], actor_id=99)
    assert store.get_record(1, 10, DAY).remarks == NOT_LOGGED_IN_REMARK


def test_one_row_per_key(store, database):
    from sqlalchemy import func, select
    from lab_attendance.models import AttendanceRecord

    store.initialize_sheet(1, DAY, [10], actor_id=None)
    store.upsert_merged(1, 10, DAY, present())
    store.upsert_merged(1, 10, DAY, ABSENT)
    with database.session() as session:
        assert session.scalar(select(func.count()).select_from(AttendanceRecord)) == 1


def test_update_missing_record(store):
    with pytest.raises(RecordNotFoundError):
        store.update_record(1, 10, DAY, status=AttendanceStatus.present)

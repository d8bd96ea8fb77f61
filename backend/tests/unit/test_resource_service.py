"""
Unit tests for ResourceService: directories, availability windows and time off.
"""

import pytest
from datetime import datetime, time

from fastapi import HTTPException

from core.constants import TECHNICIAN_COLORS
from services.resource_service import ResourceService
from tests.conftest import OTHER_ORG_ID, TEST_ORG_ID
from tests.helpers import create_bay, create_technician, local, resource_of


class TestTechnicianDirectory:
    """Test technician lanes."""

    def test_lanes_in_creation_order(self, db_session):
        create_technician(db_session, TEST_ORG_ID, first_name="Alpha", last_name=None,
                          created_at=datetime(2026, 1, 1, 8, 0))
        create_technician(db_session, TEST_ORG_ID, first_name="Beta", last_name=None,
                          created_at=datetime(2026, 1, 2, 8, 0))

        technicians = ResourceService.list_technicians(db_session, TEST_ORG_ID)

        assert [t.name for t in technicians] == ["Alpha", "Beta"]

    def test_resource_color_and_id(self, db_session):
        technician = create_technician(db_session, TEST_ORG_ID, color="#123456")

        lane = ResourceService.list_technicians(db_session, TEST_ORG_ID)[0]

        assert lane.color == "#123456"
        assert lane.resource_id == resource_of(db_session, technician_id=technician.id).id

    def test_fallback_color_and_resource_id(self, db_session):
        technician = create_technician(db_session, TEST_ORG_ID, with_resource=False)

        lane = ResourceService.list_technicians(db_session, TEST_ORG_ID)[0]

        assert lane.color == TECHNICIAN_COLORS[0]
        assert lane.resource_id == technician.id

    def test_fallback_names(self, db_session):
        create_technician(db_session, TEST_ORG_ID, first_name=None, last_name=None, skills=["brakes"],
                          with_resource=False, created_at=datetime(2026, 1, 1, 8, 0))
        create_technician(db_session, TEST_ORG_ID, first_name=None, last_name=None,
                          with_resource=False, created_at=datetime(2026, 1, 2, 8, 0))

        names = [t.name for t in ResourceService.list_technicians(db_session, TEST_ORG_ID)]

        assert names == ["Brakes specialist", "Technician 2"]

    def test_other_organization_hidden(self, db_session):
        create_technician(db_session, OTHER_ORG_ID)
        assert ResourceService.list_technicians(db_session, TEST_ORG_ID) == []


class TestBayDirectory:
    def test_bays_ordered_by_name(self, db_session):
        create_bay(db_session, TEST_ORG_ID, name="Lift B")
        create_bay(db_session, TEST_ORG_ID, name="Lift A")
        create_bay(db_session, OTHER_ORG_ID, name="Lift C")

        assert [b.name for b in ResourceService.list_bays(db_session, TEST_ORG_ID)] == ["Lift A", "Lift B"]


class TestAvailabilityWindows:
    """Test weekly availability windows."""

    def test_create_and_list(self, db_session):
        technician = create_technician(db_session, TEST_ORG_ID)
        resource = resource_of(db_session, technician_id=technician.id)

        ResourceService.create_availability(db_session, TEST_ORG_ID, resource.id, 2, time(13, 0), time(17, 0))
        ResourceService.create_availability(db_session, TEST_ORG_ID, resource.id, 0, time(8, 0), time(12, 0))

        entries = ResourceService.list_availability(db_session, TEST_ORG_ID, resource.id)
        assert [(e.weekday, e.start_time) for e in entries] == [(0, time(8, 0)), (2, time(13, 0))]

    @pytest.mark.parametrize("weekday,start,end", [
        (7, time(8, 0), time(12, 0)),
        (-1, time(8, 0), time(12, 0)),
        (0, time(12, 0), time(12, 0)),
        (0, time(13, 0), time(12, 0)),
    ])
    def test_invalid_windows(self, db_session, weekday, start, end):
        technician = create_technician(db_session, TEST_ORG_ID)
        resource = resource_of(db_session, technician_id=technician.id)

        with pytest.raises(HTTPException) as exc_info:
            ResourceService.create_availability(db_session, TEST_ORG_ID, resource.id, weekday, start, end)
        assert exc_info.value.status_code == 400

    def test_unknown_resource(self, db_session):
        with pytest.raises(HTTPException) as exc_info:
            ResourceService.create_availability(db_session, TEST_ORG_ID, "missing", 0, time(8, 0), time(9, 0))
        assert exc_info.value.status_code == 404

    def test_delete(self, db_session):
        bay = create_bay(db_session, TEST_ORG_ID)
        resource = resource_of(db_session, bay_id=bay.id)
        entry = ResourceService.create_availability(db_session, TEST_ORG_ID, resource.id, 0, time(8, 0), time(9, 0))

        ResourceService.delete_availability(db_session, TEST_ORG_ID, entry.id)

        assert ResourceService.list_availability(db_session, TEST_ORG_ID) == []
        with pytest.raises(HTTPException):
            ResourceService.delete_availability(db_session, TEST_ORG_ID, entry.id)


class TestTimeOff:
    """Test resource time off."""

    def test_create_and_list(self, db_session):
        technician = create_technician(db_session, TEST_ORG_ID)
        resource = resource_of(db_session, technician_id=technician.id)

        entry = ResourceService.create_time_off(
            db_session, TEST_ORG_ID, resource.id, local(12), local(14), reason="  Dentist  "
        )

        assert entry.reason == "Dentist"
        assert entry.starts_at == local(12)
        assert ResourceService.list_time_off(db_session, TEST_ORG_ID, resource.id) == [entry]

    def test_range_filter(self, db_session):
        technician = create_technician(db_session, TEST_ORG_ID)
        resource = resource_of(db_session, technician_id=technician.id)
        ResourceService.create_time_off(db_session, TEST_ORG_ID, resource.id, local(8), local(9))
        later = ResourceService.create_time_off(db_session, TEST_ORG_ID, resource.id, local(15), local(16))

        result = ResourceService.list_time_off(db_session, TEST_ORG_ID, range_start=local(9), range_end=local(20))

        assert result == [later]

    def test_invalid_period(self, db_session):
        technician = create_technician(db_session, TEST_ORG_ID)
        resource = resource_of(db_session, technician_id=technician.id)

        with pytest.raises(HTTPException) as exc_info:
            ResourceService.create_time_off(db_session, TEST_ORG_ID, resource.id, local(14), local(12))
        assert exc_info.value.status_code == 400

    def test_delete(self, db_session):
        technician = create_technician(db_session, TEST_ORG_ID)
        resource = resource_of(db_session, technician_id=technician.id)
        entry = ResourceService.create_time_off(db_session, TEST_ORG_ID, resource.id, local(12), local(14))

        ResourceService.delete_time_off(db_session, TEST_ORG_ID, entry.id)

        assert ResourceService.list_time_off(db_session, TEST_ORG_ID) == []

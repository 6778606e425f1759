"""
Integration tests for the network REST API.

Each test starts from the seeded demo network (three hospitals, their
doctors, beds and ambulances) and authenticates as a hospital, doctor or
crew principal.  Realtime delivery is observed through in-process
senders attached to the rooms a dashboard would join.
"""
from datetime import timedelta
from unittest import mock

from django.conf import settings
from django.db.models.query import QuerySet
from django.utils import timezone
from rest_framework.test import APITestCase

from operations.authentication import Principal
from operations.models import Ambulance, Attendance, Bed, BloodBank, Doctor, EmergencyRequest, Leave
from operations.realtime import hub
from operations.realtime.events import ambulance_room, hospital_room
from operations.services.reset import reset_network

from .fakes import RecordingSender, attach

HOSP001 = Principal(role='hospital', ref='HOSP001', hospital_id='HOSP001')
HOSP002 = Principal(role='hospital', ref='HOSP002', hospital_id='HOSP002')
DOC100 = Principal(role='doctor', ref='DOC100', hospital_id='HOSP001')
DOC103 = Principal(role='doctor', ref='DOC103', hospital_id='HOSP003')
EMT01 = Principal(role='emt', ref='EMT01', hospital_id='HOSP001', ambulance_id='AMB001')
EMT02 = Principal(role='emt', ref='EMT02', hospital_id='HOSP002', ambulance_id='AMB002')


class NetworkAPITestBase(APITestCase):
    def setUp(self) -> None:
        reset_network()
        # staff dashboard of HOSP001 and a public client parked in another room
        self.staff = RecordingSender()
        self.public = RecordingSender()
        attach(self.staff, hospital_room('HOSP001'))
        attach(self.public, hospital_room('HOSP002'))

    def as_user(self, principal):
        self.client.force_authenticate(user=principal)


class BedTests(NetworkAPITestBase):
    def test_list_beds_counts_statuses(self):
        r = self.client.get('/api/beds/HOSP001')
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data['total'], 13)
        self.assertEqual(r.data['counts']['Occupied'], 4)
        self.assertEqual(r.data['counts']['Vacant'], 9)
        self.assertEqual(len(r.data['beds']), 13)

    def test_list_beds_unknown_hospital(self):
        r = self.client.get('/api/beds/HOSP404')
        self.assertEqual(r.status_code, 404)
        self.assertEqual(r.data, {'success': False, 'message': 'Not found'})

    def test_status_update_is_dual_emitted(self):
        self.as_user(HOSP001)
        r = self.client.put('/api/beds/HOSP001-W1-B01/status',
                            {'status': 'Occupied', 'patientName': 'R. Das'}, format='json')
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data['bed']['occupiedBy'], 'R. Das')

        self.assertEqual(self.staff.names, ['bed:update', 'bed:publicUpdate'])
        staff_view = self.staff.payloads('bed:update')[0]
        self.assertEqual(staff_view['occupiedBy'], 'R. Das')
        self.assertEqual(staff_view['status'], 'Occupied')
        self.assertIsInstance(staff_view['lastUpdated'], str)

        self.assertEqual(self.public.names, ['bed:publicUpdate'])
        public_view = self.public.payloads('bed:publicUpdate')[0]
        self.assertNotIn('occupiedBy', public_view)
        self.assertEqual(public_view['bedId'], 'HOSP001-W1-B01')

    def test_vacating_clears_occupant(self):
        self.as_user(HOSP001)
        self.client.put('/api/beds/HOSP001-W1-B01/status', {'status': 'Occupied', 'patientName': 'X'}, format='json')
        self.client.put('/api/beds/HOSP001-W1-B01/status', {'status': 'Vacant'}, format='json')
        bed = Bed.objects.get(pk='HOSP001-W1-B01')
        self.assertEqual(bed.occupied_by, '')
        self.assertIsNone(bed.occupied_at)

    def test_other_hospital_cannot_touch_bed(self):
        self.as_user(HOSP002)
        r = self.client.put('/api/beds/HOSP001-W1-B01/status', {'status': 'Occupied'}, format='json')
        self.assertEqual(r.status_code, 403)
        self.assertFalse(r.data['success'])
        self.assertEqual(Bed.objects.get(pk='HOSP001-W1-B01').status, Bed.VACANT)
        self.assertEqual(self.staff.events, [])

    def test_anonymous_update_rejected(self):
        r = self.client.put('/api/beds/HOSP001-W1-B01/status', {'status': 'Occupied'}, format='json')
        self.assertEqual(r.status_code, 401)
        self.assertFalse(r.data['success'])

    def test_doctor_cannot_update_beds(self):
        self.as_user(DOC100)
        r = self.client.put('/api/beds/HOSP001-W1-B01/status', {'status': 'Occupied'}, format='json')
        self.assertEqual(r.status_code, 403)

    def test_invalid_status(self):
        self.as_user(HOSP001)
        r = self.client.put('/api/beds/HOSP001-W1-B01/status', {'status': 'Broken'}, format='json')
        self.assertEqual(r.status_code, 400)
        self.assertFalse(r.data['success'])
        self.assertTrue(r.data['message'].startswith('status'))

    def test_create_bed_and_duplicate(self):
        self.as_user(HOSP001)
        body = {'bedId': 'HOSP001-W2-B01', 'hospitalId': 'HOSP001', 'bedNumber': '01', 'wardNumber': '2'}
        r = self.client.post('/api/beds', body, format='json')
        self.assertEqual(r.status_code, 201)
        self.assertEqual(r.data['bed']['status'], 'Vacant')
        self.assertIn('bed:publicUpdate', self.public.names)

        r = self.client.post('/api/beds', body, format='json')
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.data['message'], 'Bed ID already exists')

    def test_create_bed_for_other_hospital(self):
        self.as_user(HOSP002)
        r = self.client.post('/api/beds', {'bedId': 'X-1', 'hospitalId': 'HOSP001', 'bedNumber': '1'}, format='json')
        self.assertEqual(r.status_code, 403)

    def test_discharge_then_clean(self):
        self.as_user(HOSP001)
        r = self.client.post('/api/beds/HOSP001-W1-B03/discharge', {'reason': 'Recovered'}, format='json')
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data['bed']['status'], 'Cleaning')
        self.assertEqual(self.staff.names, ['bed:discharged'])
        self.assertEqual(self.public.events, [])
        self.assertEqual(self.staff.payloads('bed:discharged')[0]['expectedCleaningMinutes'], 30)

        r = self.client.post('/api/beds/HOSP001-W1-B03/cleaned', format='json')
        self.assertEqual(r.status_code, 200)
        bed = Bed.objects.get(pk='HOSP001-W1-B03')
        self.assertEqual(bed.status, Bed.VACANT)
        self.assertEqual(bed.cleaning_completed_by, 'HOSP001')
        self.assertIn('bed:cleaned', self.staff.names)
        self.assertEqual(self.public.names, ['bed:publicUpdate'])

    def test_discharge_requires_occupied_bed(self):
        self.as_user(HOSP001)
        r = self.client.post('/api/beds/HOSP001-W1-B01/discharge', {}, format='json')
        self.assertEqual(r.status_code, 400)
        r = self.client.post('/api/beds/HOSP001-W1-B01/cleaned', {}, format='json')
        self.assertEqual(r.status_code, 400)

    def test_update_succeeds_when_a_recipient_fails(self):
        attach(RecordingSender(error=RuntimeError('socket gone')), hospital_room('HOSP001'))
        self.as_user(HOSP001)
        r = self.client.put('/api/beds/HOSP001-W1-B01/status', {'status': 'Reserved'}, format='json')
        self.assertEqual(r.status_code, 200)
        self.assertEqual(self.staff.names, ['bed:update', 'bed:publicUpdate'])

    def test_update_succeeds_when_broadcast_breaks(self):
        self.as_user(HOSP001)
        with mock.patch.object(hub.broadcaster, 'broadcast_dual', new=mock.AsyncMock(side_effect=RuntimeError)):
            r = self.client.put('/api/beds/HOSP001-W1-B01/status', {'status': 'Reserved'}, format='json')
        self.assertEqual(r.status_code, 200)
        self.assertEqual(Bed.objects.get(pk='HOSP001-W1-B01').status, Bed.RESERVED)


class HospitalTests(NetworkAPITestBase):
    def test_list_and_detail(self):
        r = self.client.get('/api/hospitals')
        self.assertEqual([h['hospitalId'] for h in r.data], ['HOSP001', 'HOSP002', 'HOSP003'])
        r = self.client.get('/api/hospital/HOSP002')
        self.assertEqual(r.data['location'], {'lat': 21.1610, 'lng': 81.7870})
        self.assertNotIn('password', r.data)

    def test_update_emits_to_staff_and_public(self):
        self.as_user(HOSP001)
        r = self.client.put('/api/hospital/HOSP001', {'contact': '9111111111', 'facilities': ['ICU']}, format='json')
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data['hospital']['facilities'], ['ICU'])
        self.assertEqual(self.staff.payloads('hospital:update')[0]['updates']['contact'], '9111111111')
        self.assertEqual(self.public.names, ['hospital:publicUpdate'])

    def test_update_requires_owner(self):
        r = self.client.put('/api/hospital/HOSP001', {'contact': '1'}, format='json')
        self.assertEqual(r.status_code, 401)
        self.as_user(HOSP002)
        r = self.client.put('/api/hospital/HOSP001', {'contact': '1'}, format='json')
        self.assertEqual(r.status_code, 403)


class DoctorTests(NetworkAPITestBase):
    def test_list_available_only(self):
        r = self.client.get('/api/doctors/HOSP002?availableOnly=true')
        self.assertEqual(r.data, [])
        r = self.client.get('/api/doctors/HOSP001')
        self.assertEqual([d['doctorId'] for d in r.data], ['DOC100', 'DOC101'])

    def test_doctor_detail(self):
        r = self.client.get('/api/doctors/doctor/DOC103')
        self.assertEqual(r.data['hospitalId'], 'HOSP003')
        self.assertEqual(self.client.get('/api/doctors/doctor/DOC999').status_code, 404)

    def test_create_doctor_uses_default_password(self):
        self.as_user(HOSP001)
        r = self.client.post('/api/doctors', {'doctorId': 'DOC200', 'hospitalId': 'HOSP001', 'name': 'Dr. E Rao'}, format='json')
        self.assertEqual(r.status_code, 201)
        doctor = Doctor.objects.get(pk='DOC200')
        self.assertTrue(doctor.check_password(settings.DEFAULT_STAFF_PASSWORD))
        self.assertTrue(doctor.force_password_change)

    def test_doctor_marks_own_attendance(self):
        self.as_user(DOC100)
        r = self.client.post('/api/doctors/attendance', {
            'doctorId': 'DOC100', 'date': timezone.localdate().isoformat(), 'availability': 'Absent',
        }, format='json')
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data['attendance']['markedBy'], 'Doctor')
        self.assertEqual(Doctor.objects.get(pk='DOC100').availability, 'Not Available')
        self.assertEqual(self.staff.names, ['doctor:attendance', 'doctor:publicUpdate'])
        self.assertEqual(self.public.payloads('doctor:publicUpdate')[0]['availability'], 'Not Available')
        self.assertEqual(Attendance.objects.filter(doctor_id='DOC100').count(), 1)

    def test_doctor_cannot_mark_colleague(self):
        self.as_user(DOC100)
        r = self.client.post('/api/doctors/attendance', {
            'doctorId': 'DOC101', 'date': timezone.localdate().isoformat(), 'availability': 'Absent',
        }, format='json')
        self.assertEqual(r.status_code, 403)

    def test_reception_manual_edit(self):
        self.as_user(HOSP001)
        yesterday = (timezone.localdate() - timedelta(days=1)).isoformat()
        r = self.client.put('/api/doctors/attendance/manual-update', {
            'doctorId': 'DOC101', 'date': yesterday, 'availability': 'Leave',
        }, format='json')
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data['attendance']['method'], 'Manual Edit')
        self.assertEqual(self.staff.names, ['attendance:updated', 'doctor:publicUpdate'])

        self.as_user(HOSP002)
        r = self.client.put('/api/doctors/attendance/manual-update', {
            'doctorId': 'DOC101', 'date': yesterday, 'availability': 'Present',
        }, format='json')
        self.assertEqual(r.status_code, 403)

    def test_attendance_history(self):
        r = self.client.get('/api/doctors/attendance/DOC100')
        self.assertEqual(len(r.data), 1)
        self.assertEqual(r.data[0]['availability'], 'Present')


class GpsAttendanceTests(APITestCase):
    def setUp(self) -> None:
        reset_network()
        self.staff = RecordingSender()
        attach(self.staff, hospital_room('HOSP003'))
        self.client.force_authenticate(user=DOC103)

    def _check(self, action, lat=21.2444, lng=81.6400):
        return self.client.post(f'/api/doctors/attendance/gps-{action}', {
            'doctorId': 'DOC103', 'location': {'lat': lat, 'lng': lng},
        }, format='json')

    def test_check_in_at_hospital_is_verified(self):
        r = self._check('check-in')
        self.assertEqual(r.status_code, 200)
        self.assertTrue(r.data['verified'])
        self.assertEqual(r.data['distance'], 0)
        self.assertEqual(r.data['attendance']['method'], 'GPS')
        self.assertEqual(self.staff.names, ['doctor:gps-check-in'])
        self.assertEqual(Doctor.objects.get(pk='DOC103').availability, 'Available')

    def test_check_in_far_away_is_recorded_unverified(self):
        r = self._check('check-in', lat=21.3000)
        self.assertEqual(r.status_code, 200)
        self.assertFalse(r.data['verified'])
        self.assertGreater(r.data['distance'], 100)
        self.assertIn('outside 100m radius', r.data['message'])

    def test_second_check_in_rejected(self):
        self._check('check-in')
        r = self._check('check-in')
        self.assertEqual(r.status_code, 400)
        self.assertIn('Already checked in', r.data['message'])

    def test_check_out_requires_check_in(self):
        r = self._check('check-out')
        self.assertEqual(r.status_code, 400)
        self.assertIn('No check-in', r.data['message'])

    def test_check_out_closes_the_day(self):
        self._check('check-in')
        r = self._check('check-out')
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data['hoursWorked'], 0)
        self.assertEqual(Doctor.objects.get(pk='DOC103').availability, 'Not Available')
        self.assertEqual(self.staff.names, ['doctor:gps-check-in', 'doctor:gps-check-out'])
        self.assertEqual(self._check('check-out').status_code, 400)

    def test_cannot_check_in_for_someone_else(self):
        r = self.client.post('/api/doctors/attendance/gps-check-in', {
            'doctorId': 'DOC100', 'location': {'lat': 21.2514, 'lng': 81.6296},
        }, format='json')
        self.assertEqual(r.status_code, 403)

    def test_hospital_without_location(self):
        from operations.models import Hospital
        Hospital.objects.filter(pk='HOSP003').update(lat=None, lng=None)
        r = self._check('check-in')
        self.assertEqual(r.status_code, 400)
        self.assertIn('location not configured', r.data['message'])

    def test_hospital_role_cannot_gps_check_in(self):
        self.client.force_authenticate(user=HOSP001)
        self.assertEqual(self._check('check-in').status_code, 403)


class LeaveTests(NetworkAPITestBase):
    def _request(self):
        self.as_user(DOC100)
        today = timezone.localdate()
        return self.client.post('/api/doctors/DOC100/leave', {
            'startDate': (today + timedelta(days=2)).isoformat(),
            'endDate': (today + timedelta(days=4)).isoformat(),
            'leaveType': 'Casual',
            'reason': 'Family <b>function</b>',
        }, format='json')

    def test_request_and_approve(self):
        r = self._request()
        self.assertEqual(r.status_code, 201)
        leave_id = r.data['leave']['leaveId']
        self.assertTrue(leave_id.startswith('LEAVE-DOC100-'))
        self.assertEqual(r.data['leave']['reason'], 'Family function')
        self.assertEqual(self.staff.names, ['leave:requested'])

        self.as_user(HOSP001)
        r = self.client.put(f'/api/doctors/DOC100/leaves/{leave_id}/approve', {'status': 'Approved'}, format='json')
        self.assertEqual(r.status_code, 200)
        self.assertEqual(Leave.objects.get(pk=leave_id).approved_by, 'HOSP001')
        self.assertEqual(self.public.names, ['leave:updated'])

    def test_other_hospital_cannot_decide(self):
        leave_id = self._request().data['leave']['leaveId']
        self.as_user(HOSP002)
        r = self.client.put(f'/api/doctors/DOC100/leaves/{leave_id}/approve', {'status': 'Rejected'}, format='json')
        self.assertEqual(r.status_code, 403)
        self.assertEqual(Leave.objects.get(pk=leave_id).status, Leave.PENDING)

    def test_end_before_start(self):
        self.as_user(DOC100)
        r = self.client.post('/api/doctors/DOC100/leave', {
            'startDate': '2030-01-05', 'endDate': '2030-01-01', 'leaveType': 'Sick', 'reason': 'flu',
        }, format='json')
        self.assertEqual(r.status_code, 400)

    def test_list_leaves(self):
        self._request()
        r = self.client.get('/api/doctors/DOC100/leaves')
        self.assertEqual(len(r.data), 1)
        self.as_user(HOSP002)
        self.assertEqual(self.client.get('/api/doctors/DOC100/leaves').status_code, 403)


class AmbulanceTests(NetworkAPITestBase):
    def test_crew_location_update(self):
        crew_tablet = RecordingSender()
        attach(crew_tablet, ambulance_room('AMB001'))
        self.as_user(EMT01)

        r = self.client.put('/api/ambulances/AMB001/location', {'lat': 21.25, 'lng': 81.63, 'status': 'En Route'}, format='json')

        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data['location'], {'lat': 21.25, 'lng': 81.63})
        self.assertEqual(self.staff.names, ['ambulance:location-update', 'ambulance:location'])
        self.assertEqual(self.staff.payloads('ambulance:location-update')[0]['status'], 'En Route')
        fix = {'ambulanceId': 'AMB001', 'lat': 21.25, 'lng': 81.63}
        self.assertEqual(self.staff.payloads('ambulance:location'), [fix])
        self.assertEqual(crew_tablet.names, ['ambulance:location'])
        self.assertEqual(crew_tablet.payloads('ambulance:location'), [fix])
        self.assertEqual(self.public.events, [])
        self.assertIsNotNone(Ambulance.objects.get(pk='AMB001').last_location_update)

    def test_other_crew_cannot_move_ambulance(self):
        self.as_user(EMT02)
        r = self.client.put('/api/ambulances/AMB001/location', {'lat': 21.25, 'lng': 81.63}, format='json')
        self.assertEqual(r.status_code, 403)

    def test_hospital_role_is_not_crew(self):
        self.as_user(HOSP001)
        r = self.client.put('/api/ambulances/AMB001/location', {'lat': 21.25, 'lng': 81.63}, format='json')
        self.assertEqual(r.status_code, 403)

    def test_out_of_range_coordinates(self):
        self.as_user(EMT01)
        r = self.client.put('/api/ambulances/AMB001/location', {'lat': 91, 'lng': 81.63}, format='json')
        self.assertEqual(r.status_code, 400)

    def test_eta(self):
        Ambulance.objects.filter(pk='AMB001').update(lat=0.0, lng=0.0)
        r = self.client.get('/api/ambulances/AMB001/eta?destLat=0&destLng=0.0899')
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data['distance'], 9996)
        self.assertEqual(r.data['distanceKm'], '10.00')
        self.assertEqual(r.data['etaMinutes'], 15)

    def test_eta_without_fix(self):
        r = self.client.get('/api/ambulances/AMB002/eta?destLat=21.2&destLng=81.6')
        self.assertEqual(r.status_code, 400)

    def test_register_ambulance_and_crew(self):
        self.as_user(HOSP001)
        r = self.client.post('/api/ambulances', {'ambulanceId': 'AMB010', 'hospitalId': 'HOSP001', 'vehicleNumber': 'CG04-0001'}, format='json')
        self.assertEqual(r.status_code, 201)
        self.assertEqual(r.data['ambulance']['status'], 'Offline')

        r = self.client.post('/api/ambulances/emt', {
            'emtId': 'EMT10', 'hospitalId': 'HOSP001', 'ambulanceId': 'AMB010', 'name': 'Anil Rao',
            'mobile': '9000000010', 'licenseNumber': 'LIC-EMT10', 'qualification': 'Paramedic',
        }, format='json')
        self.assertEqual(r.status_code, 201)
        self.assertEqual(r.data['member']['emtId'], 'EMT10')

        r = self.client.post('/api/ambulances/driver', {
            'driverId': 'PIL10', 'hospitalId': 'HOSP001', 'name': 'Mohan Lal', 'mobile': '12345',
            'licenseNumber': 'LIC-PIL10', 'licenseExpiryDate': '2030-01-01',
        }, format='json')
        self.assertEqual(r.status_code, 400)

        self.assertEqual(len(self.client.get('/api/ambulances/emts/HOSP001').data), 2)
        self.assertEqual(len(self.client.get('/api/ambulances/drivers/HOSP001').data), 1)

    def test_list_ambulances_of_other_hospital_forbidden(self):
        self.as_user(HOSP002)
        self.assertEqual(self.client.get('/api/ambulances/HOSP001').status_code, 403)
        self.assertEqual(len(self.client.get('/api/ambulances/HOSP002').data), 1)


class EmergencyTests(NetworkAPITestBase):
    def setUp(self) -> None:
        super().setUp()
        self.crew_tablet = RecordingSender()
        attach(self.crew_tablet, ambulance_room('AMB001'))

    def _raise(self, **extra):
        body = {
            'hospitalId': 'HOSP001',
            'patient': {'name': 'S. Gupta', 'age': 54, 'location': {'lat': 21.26, 'lng': 81.62}},
            'emergencyType': 'Cardiac',
            'severity': 'Critical',
        }
        body.update(extra)
        return self.client.post('/api/emergency', body, format='json')

    def test_crew_raises_emergency(self):
        self.as_user(EMT01)
        r = self._raise()
        self.assertEqual(r.status_code, 201)
        self.assertEqual(r.data['emergency']['status'], 'Pending')
        self.assertTrue(r.data['emergency']['emergencyId'].startswith('EMG-HOSP001-'))
        self.assertEqual(self.staff.names, ['emergency:new'])
        self.assertEqual(self.public.events, [])

    def test_dispatch_and_follow_through(self):
        self.as_user(HOSP001)
        r = self._raise(ambulanceId='AMB001')
        self.assertEqual(r.data['emergency']['status'], 'Dispatched')
        self.assertEqual(r.data['emergency']['assignedAmbulance'], 'AMB001')
        emergency_id = r.data['emergency']['emergencyId']
        self.assertEqual(self.crew_tablet.names, ['emergency:new'])
        self.assertEqual(Ambulance.objects.get(pk='AMB001').status, 'En Route')

        self.as_user(EMT01)
        r = self.client.put(f'/api/emergency/{emergency_id}/status', {'status': 'At Scene', 'note': 'on site'}, format='json')
        self.assertEqual(r.status_code, 200)
        self.assertEqual([t['status'] for t in r.data['emergency']['timeline']], ['Pending', 'Dispatched', 'At Scene'])
        self.assertEqual(Ambulance.objects.get(pk='AMB001').status, 'At Scene')

        r = self.client.put(f'/api/emergency/{emergency_id}/status', {'status': 'Completed'}, format='json')
        self.assertEqual(r.status_code, 200)
        amb = Ambulance.objects.get(pk='AMB001')
        self.assertEqual(amb.status, 'Available')
        self.assertEqual(amb.current_emergency_id, '')
        self.assertIsNotNone(EmergencyRequest.objects.get(pk=emergency_id).completed_at)
        self.assertEqual(self.staff.names.count('emergency:update'), 2)

        r = self.client.put(f'/api/emergency/{emergency_id}/status', {'status': 'En Route'}, format='json')
        self.assertEqual(r.status_code, 400)

    def test_updates_from_stale_copies_keep_every_entry(self):
        self.as_user(HOSP001)
        emergency_id = self._raise(ambulanceId='AMB001').data['emergency']['emergencyId']
        stale = EmergencyRequest.objects.get(pk=emergency_id)
        self.staff.events.clear()

        self.as_user(EMT01)
        self.client.put(f'/api/emergency/{emergency_id}/status', {'status': 'En Route'}, format='json')
        r = self.client.put(f'/api/emergency/{emergency_id}/status', {'status': 'At Scene'}, format='json')

        self.assertEqual(r.status_code, 200)
        stored = EmergencyRequest.objects.get(pk=emergency_id)
        self.assertEqual([t['status'] for t in stored.timeline], ['Pending', 'Dispatched', 'En Route', 'At Scene'])
        self.assertEqual(len(stale.timeline), 2)
        self.assertEqual([len(p['timeline']) for p in self.staff.payloads('emergency:update')], [3, 4])
        self.assertEqual(Ambulance.objects.get(pk='AMB001').status, 'At Scene')

    def test_status_update_locks_rows(self):
        self.as_user(HOSP001)
        emergency_id = self._raise(ambulanceId='AMB001').data['emergency']['emergencyId']
        with mock.patch(
            'django.db.models.query.QuerySet.select_for_update', autospec=True,
            side_effect=QuerySet.select_for_update,
        ) as locked:
            r = self.client.put(f'/api/emergency/{emergency_id}/status', {'status': 'At Scene'}, format='json')
        self.assertEqual(r.status_code, 200)
        self.assertEqual({c.args[0].model for c in locked.call_args_list}, {EmergencyRequest, Ambulance})

    def test_crew_cannot_raise_for_other_hospital(self):
        self.as_user(EMT02)
        self.assertEqual(self._raise().status_code, 403)

    def test_unassigned_crew_cannot_update(self):
        self.as_user(HOSP001)
        emergency_id = self._raise().data['emergency']['emergencyId']
        self.as_user(EMT02)
        r = self.client.put(f'/api/emergency/{emergency_id}/status', {'status': 'At Scene'}, format='json')
        self.assertEqual(r.status_code, 403)

    def test_hospital_listing(self):
        self.as_user(HOSP001)
        self._raise()
        r = self.client.get('/api/emergency/hospital/HOSP001?active=1')
        self.assertEqual(len(r.data), 1)
        self.as_user(HOSP002)
        self.assertEqual(self.client.get('/api/emergency/hospital/HOSP001').status_code, 403)


class BloodBankTests(NetworkAPITestBase):
    def _add(self, blood_type, quantity):
        return self.client.post('/api/blood-bank', {
            'hospitalId': 'HOSP001', 'bloodType': blood_type, 'quantity': quantity,
            'expiryDate': (timezone.localdate() + timedelta(days=60)).isoformat(),
        }, format='json')

    def test_low_stock_alert(self):
        self.as_user(HOSP001)
        r = self._add('O-', 3)
        self.assertEqual(r.status_code, 201)
        self.assertEqual(r.data['totalUnits'], 3)
        self.assertEqual(self.staff.names, ['blood:added', 'blood:low-stock'])
        self.assertFalse(self.staff.payloads('blood:low-stock')[0]['critical'])

    def test_critical_stock_alert(self):
        self.as_user(HOSP001)
        self._add('AB-', 1)
        self.assertTrue(self.staff.payloads('blood:low-stock')[0]['critical'])

    def test_healthy_stock_has_no_alert(self):
        self.as_user(HOSP001)
        self._add('A+', 10)
        self.assertEqual(self.staff.names, ['blood:added'])

    def test_use_blood(self):
        self.as_user(HOSP001)
        blood_id = self._add('B+', 6).data['blood']['bloodBankId']
        self.staff.events.clear()

        r = self.client.put(f'/api/blood-bank/{blood_id}/use', {'unitsUsed': 2, 'patientName': 'K. Jain'}, format='json')
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data['remainingUnits'], 4)
        self.assertEqual(self.staff.names, ['blood:used', 'blood:low-stock'])

        r = self.client.put(f'/api/blood-bank/{blood_id}/use', {'unitsUsed': 10}, format='json')
        self.assertEqual(r.status_code, 400)

        r = self.client.put(f'/api/blood-bank/{blood_id}/use', {}, format='json')
        self.assertEqual(r.status_code, 200)
        self.assertEqual(BloodBank.objects.get(pk=blood_id).status, 'Used')
        self.assertEqual(len(self.client.get('/api/blood-bank/history/HOSP001').data['history']), 1)

    def test_draws_from_stale_copies_are_both_counted(self):
        self.as_user(HOSP001)
        blood_id = self._add('A-', 6).data['blood']['bloodBankId']
        stale = BloodBank.objects.get(pk=blood_id)
        self.staff.events.clear()

        self.client.put(f'/api/blood-bank/{blood_id}/use', {'unitsUsed': 2}, format='json')
        r = self.client.put(f'/api/blood-bank/{blood_id}/use', {'unitsUsed': 2}, format='json')

        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data['remainingUnits'], 2)
        self.assertEqual(BloodBank.objects.get(pk=blood_id).quantity, 2)
        self.assertEqual(stale.quantity, 6)
        self.assertEqual([p['remainingUnits'] for p in self.staff.payloads('blood:used')], [4, 2])
        self.assertEqual(self.staff.payloads('blood:low-stock')[-1]['totalUnits'], 2)

    def test_summary_and_alerts(self):
        self.as_user(HOSP001)
        self._add('O+', 7)
        self._add('O+', 2)
        r = self.client.get('/api/blood-bank/HOSP001')
        self.assertEqual(r.data['summary']['O+'], 9)
        self.assertEqual(r.data['summary']['AB+'], 0)
        self.assertEqual(r.data['totalUnits'], 9)
        self.assertEqual(r.data['batches'], 2)

        alerts = {a['bloodType']: a['level'] for a in self.client.get('/api/blood-bank/alerts/HOSP001').data['alerts']}
        self.assertNotIn('O+', alerts)
        self.assertEqual(alerts['AB+'], 'critical')

    def test_expiring_soon(self):
        BloodBank.objects.create(
            blood_bank_id='BLOOD-HOSP001-A--1', hospital_id='HOSP001', blood_type='A-', quantity=2,
            expiry_date=timezone.localdate() + timedelta(days=5),
        )
        r = self.client.get('/api/blood-bank/expiry/HOSP001')
        self.assertEqual([b['bloodBankId'] for b in r.data['expiringBlood']], ['BLOOD-HOSP001-A--1'])

    def test_invalid_blood_type(self):
        self.as_user(HOSP001)
        r = self._add('C+', 1)
        self.assertEqual(r.status_code, 400)
        self.assertIn('Invalid blood type', r.data['message'])


class AnnouncementTests(NetworkAPITestBase):
    def _post(self, **extra):
        body = {'title': 'ICU full', 'content': 'Divert <script>x</script>critical cases', 'priority': 'High'}
        body.update(extra)
        return self.client.post('/api/announcements', body, format='json')

    def test_post_reaches_everyone(self):
        self.as_user(HOSP001)
        r = self._post()
        self.assertEqual(r.status_code, 201)
        self.assertEqual(r.data['announcement']['hospitalName'], 'RapidCare General Hospital')
        self.assertNotIn('<script>', r.data['announcement']['content'])
        self.assertEqual(self.public.names, ['announcement:posted'])
        self.assertEqual(self.staff.names, ['announcement:posted'])

    def test_content_length_limit(self):
        self.as_user(HOSP001)
        self.assertEqual(self._post(content='x' * 501).status_code, 400)

    def test_list_edit_and_delete(self):
        self.as_user(HOSP001)
        ann_id = self._post().data['announcement']['announcementId']

        r = self.client.get('/api/announcements/HOSP001')
        self.assertEqual([a['announcementId'] for a in r.data['announcements']], [ann_id])

        r = self.client.put(f'/api/announcements/{ann_id}', {'priority': 'Critical'}, format='json')
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data['announcement']['priority'], 'Critical')

        self.as_user(HOSP002)
        self.assertEqual(self.client.delete(f'/api/announcements/{ann_id}').status_code, 403)

        self.as_user(HOSP001)
        self.assertEqual(self.client.delete(f'/api/announcements/{ann_id}').status_code, 200)
        self.assertEqual(self.client.get('/api/announcements/HOSP001').data['announcements'], [])
        self.assertIn('announcement:deleted', self.public.names)

    def test_expired_announcements_hidden(self):
        self.as_user(HOSP001)
        ann_id = self._post().data['announcement']['announcementId']
        from operations.models import Announcement
        Announcement.objects.filter(pk=ann_id).update(expires_at=timezone.now() - timedelta(minutes=1))
        self.assertEqual(self.client.get('/api/announcements/HOSP001').data['announcements'], [])

    def test_doctor_cannot_post(self):
        self.as_user(DOC100)
        self.assertEqual(self._post().status_code, 403)


class HealthTests(APITestCase):
    def test_healthz(self):
        attach(RecordingSender())
        r = self.client.get('/healthz')
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json(), {'success': True, 'db': True, 'sockets': 1})

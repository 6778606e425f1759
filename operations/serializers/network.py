"""
Request validation and response shapes for hospitals, beds, doctors,
attendance and leave.
"""
import bleach
from rest_framework import serializers

from operations.models import SHIFT_CHOICES, Attendance, Bed, Leave

SHIFTS = [s for s, _ in SHIFT_CHOICES]


def _clean(v):
    return bleach.clean((v or '').strip(), strip=True)


class LocationSerializer(serializers.Serializer):
    lat = serializers.FloatField(min_value=-90, max_value=90)
    lng = serializers.FloatField(min_value=-180, max_value=180)


class HospitalUpdateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255, required=False)
    contact = serializers.CharField(max_length=32, required=False, allow_blank=True)
    address = serializers.DictField(required=False)
    location = LocationSerializer(required=False)
    services = serializers.ListField(child=serializers.CharField(max_length=128), required=False)
    facilities = serializers.ListField(child=serializers.CharField(max_length=128), required=False)
    insurance = serializers.ListField(child=serializers.CharField(max_length=128), required=False)
    treatment = serializers.ListField(child=serializers.CharField(max_length=128), required=False)
    surgery = serializers.ListField(child=serializers.CharField(max_length=128), required=False)
    therapy = serializers.ListField(child=serializers.CharField(max_length=128), required=False)

    def validate_name(self, v):
        v = _clean(v)
        if not v:
            raise serializers.ValidationError('Name cannot be empty')
        return v


class BedCreateSerializer(serializers.Serializer):
    bedId = serializers.CharField(max_length=64)
    hospitalId = serializers.CharField(max_length=32)
    bedNumber = serializers.CharField(max_length=16)
    wardNumber = serializers.CharField(max_length=32, required=False, allow_blank=True)
    bedType = serializers.ChoiceField(choices=[t for t, _ in Bed.TYPE_CHOICES], required=False)


class BedStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[s for s, _ in Bed.STATUS_CHOICES])
    patientName = serializers.CharField(max_length=255, required=False, allow_blank=True)

    def validate_patientName(self, v):
        return _clean(v)


class DischargeSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    expectedCleaningMinutes = serializers.IntegerField(min_value=1, max_value=24 * 60, required=False)


class DoctorCreateSerializer(serializers.Serializer):
    doctorId = serializers.CharField(max_length=32)
    hospitalId = serializers.CharField(max_length=32)
    name = serializers.CharField(max_length=255)
    qualification = serializers.CharField(max_length=255, required=False, allow_blank=True)
    speciality = serializers.CharField(max_length=255, required=False, allow_blank=True)
    experience = serializers.CharField(max_length=64, required=False, allow_blank=True)
    shift = serializers.ChoiceField(choices=SHIFTS, required=False)

    def validate_name(self, v):
        v = _clean(v)
        if len(v) < 2:
            raise serializers.ValidationError('Name must be at least 2 characters')
        return v


class AttendanceSerializer(serializers.Serializer):
    doctorId = serializers.CharField(max_length=32)
    date = serializers.DateField()
    availability = serializers.ChoiceField(choices=[a for a, _ in Attendance.AVAILABILITY_CHOICES])
    shift = serializers.ChoiceField(choices=SHIFTS, required=False)
    method = serializers.ChoiceField(choices=['Manual', 'QR'], required=False)


class GpsCheckSerializer(serializers.Serializer):
    doctorId = serializers.CharField(max_length=32)
    location = LocationSerializer()
    shift = serializers.ChoiceField(choices=SHIFTS, required=False)


class LeaveRequestSerializer(serializers.Serializer):
    startDate = serializers.DateField()
    endDate = serializers.DateField()
    leaveType = serializers.ChoiceField(choices=[t for t, _ in Leave.TYPE_CHOICES])
    reason = serializers.CharField(max_length=1000)

    def validate_reason(self, v):
        return _clean(v)

    def validate(self, attrs):
        if attrs['startDate'] > attrs['endDate']:
            raise serializers.ValidationError('End date must be after start date')
        return attrs


class LeaveDecisionSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[Leave.APPROVED, Leave.REJECTED])
    rejectionReason = serializers.CharField(required=False, allow_blank=True)
    remarks = serializers.CharField(required=False, allow_blank=True)


def hospital_data(h, *, public=True):
    data = {
        'hospitalId': h.hospital_id,
        'name': h.name,
        'contact': h.contact,
        'address': h.address,
        'location': {'lat': h.lat, 'lng': h.lng} if h.has_location else None,
        'services': h.services,
        'facilities': h.facilities,
        'insurance': h.insurance,
        'treatment': h.treatment,
        'surgery': h.surgery,
        'therapy': h.therapy,
    }
    if not public:
        data['forcePasswordChange'] = h.force_password_change
    return data


def bed_data(b):
    return {
        'bedId': b.bed_id,
        'hospitalId': b.hospital_id,
        'bedNumber': b.bed_number,
        'wardNumber': b.ward_number,
        'bedType': b.bed_type,
        'status': b.status,
        'occupiedBy': b.occupied_by or None,
        'occupiedAt': b.occupied_at,
        'lastUpdated': b.last_updated,
    }


def doctor_data(d):
    return {
        'doctorId': d.doctor_id,
        'hospitalId': d.hospital_id,
        'name': d.name,
        'qualification': d.qualification,
        'speciality': d.speciality,
        'experience': d.experience,
        'photoUrl': d.photo_url or None,
        'availability': d.availability,
        'shift': d.shift,
    }


def attendance_data(a):
    return {
        'doctorId': a.doctor_id,
        'hospitalId': a.hospital_id,
        'date': a.date,
        'availability': a.availability,
        'shift': a.shift,
        'markedBy': a.marked_by,
        'method': a.method,
        'checkInTime': a.check_in_time,
        'checkInVerified': a.check_in_verified,
        'checkInDistance': a.check_in_distance,
        'checkOutTime': a.check_out_time,
        'checkOutVerified': a.check_out_verified,
        'checkOutDistance': a.check_out_distance,
        'hoursWorked': a.hours_worked,
    }


def leave_data(lv):
    return {
        'leaveId': lv.leave_id,
        'doctorId': lv.doctor_id,
        'hospitalId': lv.hospital_id,
        'doctorName': lv.doctor_name,
        'startDate': lv.start_date,
        'endDate': lv.end_date,
        'leaveType': lv.leave_type,
        'reason': lv.reason,
        'status': lv.status,
        'approvedBy': lv.approved_by or None,
        'approvedAt': lv.approved_at,
        'rejectionReason': lv.rejection_reason or None,
        'remarks': lv.remarks or None,
        'createdAt': lv.created_at,
    }

"""
Doctors, daily attendance (manual, QR and GPS) and leave requests.

Attendance is one row per doctor per day.  Marking it also flips the
doctor's public availability, which is what the patient-facing portal
shows, so every attendance change is emitted twice: in full to the
hospital room and as ``doctor:publicUpdate`` to everyone.
"""
import logging
import time

from django.conf import settings
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from operations.models import Attendance, Doctor, Leave
from operations.permissions import IsDoctor, IsHospital, IsHospitalOrDoctor, may_act_for_doctor, may_manage_hospital
from operations.realtime.emit import emit_dual, emit_to_all, emit_to_hospital
from operations.serializers.network import (
    AttendanceSerializer,
    DoctorCreateSerializer,
    GpsCheckSerializer,
    LeaveDecisionSerializer,
    LeaveRequestSerializer,
    attendance_data,
    doctor_data,
    leave_data,
)
from operations.services.geo import verify_within_radius

logger = logging.getLogger(__name__)


def _availability_for(attendance_status: str) -> str:
    return Doctor.AVAILABLE if attendance_status == 'Present' else Doctor.NOT_AVAILABLE


def _sync_availability(doctor, availability, shift=None):
    doctor.availability = availability
    fields = ['availability', 'updated_at']
    if shift:
        doctor.shift = shift
        fields.append('shift')
    doctor.save(update_fields=fields)


# ---------------------------------------------------------------------
# Doctors
# ---------------------------------------------------------------------
@api_view(['GET'])
@permission_classes([AllowAny])
def list_doctors(request, hospital_id):
    qs = Doctor.objects.filter(hospital_id=hospital_id).order_by('doctor_id')
    if (request.query_params.get('availableOnly') or '0') in ['1', 'true', 'True']:
        qs = qs.filter(availability=Doctor.AVAILABLE)
    return Response([doctor_data(d) for d in qs])


@api_view(['GET'])
@permission_classes([AllowAny])
def doctor_detail(request, doctor_id):
    return Response(doctor_data(get_object_or_404(Doctor, pk=doctor_id)))


@api_view(['POST'])
@permission_classes([IsHospital])
def create_doctor(request):
    s = DoctorCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data

    if not may_manage_hospital(request.user, vd['hospitalId']):
        return Response({'success': False, 'message': 'Forbidden'}, status=403)
    if Doctor.objects.filter(pk=vd['doctorId']).exists():
        return Response({'success': False, 'message': 'Doctor ID already exists'}, status=400)

    doctor = Doctor.objects.create(
        doctor_id=vd['doctorId'],
        hospital_id=vd['hospitalId'],
        name=vd['name'],
        qualification=vd.get('qualification', ''),
        speciality=vd.get('speciality', ''),
        experience=vd.get('experience', ''),
        shift=vd.get('shift', 'Morning'),
        password=settings.DEFAULT_STAFF_PASSWORD,
        force_password_change=True,
    )
    logger.info("doctor %s registered at %s", doctor.doctor_id, doctor.hospital_id)
    return Response({'success': True, 'doctor': doctor_data(doctor)}, status=201)


# ---------------------------------------------------------------------
# Attendance
# ---------------------------------------------------------------------
@api_view(['POST'])
@permission_classes([IsHospitalOrDoctor])
def mark_attendance(request):
    s = AttendanceSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data

    doctor = get_object_or_404(Doctor, pk=vd['doctorId'])
    if not may_act_for_doctor(request.user, doctor):
        return Response({'success': False, 'message': 'Forbidden: You can only mark your own attendance'}, status=403)

    shift = vd.get('shift', 'Morning')
    att, _ = Attendance.objects.update_or_create(
        doctor=doctor,
        date=vd['date'],
        defaults={
            'hospital_id': doctor.hospital_id,
            'availability': vd['availability'],
            'shift': shift,
            'marked_by': 'Doctor' if request.user.role == 'doctor' else 'Reception',
            'method': vd.get('method', 'Manual'),
        },
    )
    availability = _availability_for(vd['availability'])
    _sync_availability(doctor, availability)

    emit_dual(doctor.hospital_id, 'doctor:attendance', 'doctor:publicUpdate', {
        'doctorId': doctor.doctor_id,
        'hospitalId': doctor.hospital_id,
        'availability': availability,
        'shift': shift,
    })
    return Response({'success': True, 'attendance': attendance_data(att)})


@api_view(['PUT'])
@permission_classes([IsHospital])
def manual_update_attendance(request):
    """Reception edit of a doctor's attendance for any day."""
    s = AttendanceSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data

    doctor = get_object_or_404(Doctor, pk=vd['doctorId'])
    if not may_manage_hospital(request.user, doctor.hospital_id):
        return Response({'success': False, 'message': 'Cannot edit attendance for doctors from other hospitals'}, status=403)

    att, _ = Attendance.objects.update_or_create(
        doctor=doctor,
        date=vd['date'],
        defaults={
            'hospital_id': doctor.hospital_id,
            'availability': vd['availability'],
            'shift': vd.get('shift', 'Morning'),
            'marked_by': 'Reception',
            'method': 'Manual Edit',
        },
    )
    availability = _availability_for(vd['availability'])
    _sync_availability(doctor, availability)

    emit_to_hospital(doctor.hospital_id, 'attendance:updated', {
        'doctorId': doctor.doctor_id,
        'attendance': attendance_data(att),
    })
    emit_to_all('doctor:publicUpdate', {
        'doctorId': doctor.doctor_id,
        'hospitalId': doctor.hospital_id,
        'availability': availability,
    })
    return Response({'success': True, 'attendance': attendance_data(att), 'message': 'Attendance updated successfully'})


@api_view(['GET'])
@permission_classes([AllowAny])
def attendance_history(request, doctor_id):
    qs = Attendance.objects.filter(doctor_id=doctor_id).order_by('-date')
    return Response([attendance_data(a) for a in qs])


def _geofence(request):
    """Validate a GPS check payload; returns ``(doctor, data, verification)`` or an error Response."""
    s = GpsCheckSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data

    if request.user.ref.upper() != vd['doctorId'].upper():
        return Response({'success': False, 'message': 'Forbidden: Can only mark your own attendance'}, status=403)
    doctor = get_object_or_404(Doctor, pk=vd['doctorId'])
    hospital = doctor.hospital
    if not hospital.has_location:
        return Response({
            'success': False,
            'message': 'Hospital location not configured. Please contact administration.',
        }, status=400)

    loc = vd['location']
    verification = verify_within_radius(
        loc['lat'], loc['lng'], hospital.lat, hospital.lng,
        getattr(settings, 'GEOFENCE_RADIUS_METERS', 100),
    )
    return doctor, vd, verification


@api_view(['POST'])
@permission_classes([IsDoctor])
def gps_check_in(request):
    result = _geofence(request)
    if isinstance(result, Response):
        return result
    doctor, vd, verification = result

    today = timezone.localdate()
    existing = Attendance.objects.filter(doctor=doctor, date=today).first()
    if existing and existing.check_in_time:
        return Response({
            'success': False,
            'message': f"Already checked in today at {timezone.localtime(existing.check_in_time):%H:%M:%S}",
        }, status=400)

    shift = vd.get('shift', 'Morning')
    now = timezone.now()
    att, _ = Attendance.objects.update_or_create(
        doctor=doctor,
        date=today,
        defaults={
            'hospital_id': doctor.hospital_id,
            'availability': 'Present',
            'shift': shift,
            'marked_by': 'Doctor',
            'method': 'GPS',
            'check_in_time': now,
            'check_in_lat': vd['location']['lat'],
            'check_in_lng': vd['location']['lng'],
            'check_in_verified': verification['verified'],
            'check_in_distance': verification['distance'],
        },
    )
    _sync_availability(doctor, Doctor.AVAILABLE, shift)

    emit_to_hospital(doctor.hospital_id, 'doctor:gps-check-in', {
        'doctorId': doctor.doctor_id,
        'hospitalId': doctor.hospital_id,
        'doctorName': doctor.name,
        'checkInTime': now,
        'verified': verification['verified'],
        'distance': verification['distance'],
    })
    radius = getattr(settings, 'GEOFENCE_RADIUS_METERS', 100)
    if verification['verified']:
        message = f"Verified check-in ({verification['distance']}m from hospital)"
    else:
        message = f"Unverified check-in ({verification['distance']}m from hospital, outside {radius}m radius)"
    return Response({
        'success': True,
        'attendance': attendance_data(att),
        'verified': verification['verified'],
        'distance': verification['distance'],
        'message': message,
    })

gps_check_in.cls.throttle_scope = 'location'


@api_view(['POST'])
@permission_classes([IsDoctor])
def gps_check_out(request):
    result = _geofence(request)
    if isinstance(result, Response):
        return result
    doctor, vd, verification = result

    att = Attendance.objects.filter(doctor=doctor, date=timezone.localdate()).first()
    if att is None or att.check_in_time is None:
        return Response({'success': False, 'message': 'No check-in found for today. Please check in first.'}, status=400)
    if att.check_out_time:
        return Response({
            'success': False,
            'message': f"Already checked out today at {timezone.localtime(att.check_out_time):%H:%M:%S}",
        }, status=400)

    now = timezone.now()
    att.check_out_time = now
    att.check_out_lat = vd['location']['lat']
    att.check_out_lng = vd['location']['lng']
    att.check_out_verified = verification['verified']
    att.check_out_distance = verification['distance']
    att.hours_worked = round((now - att.check_in_time).total_seconds() / 3600, 2)
    att.save()
    _sync_availability(doctor, Doctor.NOT_AVAILABLE)

    emit_to_hospital(doctor.hospital_id, 'doctor:gps-check-out', {
        'doctorId': doctor.doctor_id,
        'hospitalId': doctor.hospital_id,
        'doctorName': doctor.name,
        'checkOutTime': now,
        'hoursWorked': att.hours_worked,
        'verified': verification['verified'],
        'distance': verification['distance'],
    })
    return Response({
        'success': True,
        'attendance': attendance_data(att),
        'hoursWorked': att.hours_worked,
        'verified': verification['verified'],
        'distance': verification['distance'],
        'message': f"Checked out successfully. Worked {att.hours_worked} hours today.",
    })

gps_check_out.cls.throttle_scope = 'location'


# ---------------------------------------------------------------------
# Leave
# ---------------------------------------------------------------------
@api_view(['POST'])
@permission_classes([IsDoctor])
def request_leave(request, doctor_id):
    if request.user.ref.upper() != doctor_id.upper():
        return Response({'success': False, 'message': 'Forbidden'}, status=403)
    doctor = get_object_or_404(Doctor, pk=doctor_id)

    s = LeaveRequestSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data

    leave = Leave.objects.create(
        leave_id=f"LEAVE-{doctor.doctor_id}-{int(time.time() * 1000)}",
        doctor=doctor,
        hospital_id=doctor.hospital_id,
        doctor_name=doctor.name,
        start_date=vd['startDate'],
        end_date=vd['endDate'],
        leave_type=vd['leaveType'],
        reason=vd['reason'],
    )
    emit_to_hospital(doctor.hospital_id, 'leave:requested', {
        'leaveId': leave.leave_id,
        'doctorId': doctor.doctor_id,
        'hospitalId': doctor.hospital_id,
        'doctorName': doctor.name,
        'leaveType': leave.leave_type,
        'startDate': leave.start_date,
        'endDate': leave.end_date,
    })
    return Response({'success': True, 'leave': leave_data(leave), 'message': 'Leave request submitted successfully'}, status=201)


@api_view(['GET'])
@permission_classes([IsHospitalOrDoctor])
def list_leaves(request, doctor_id):
    doctor = get_object_or_404(Doctor, pk=doctor_id)
    if not may_act_for_doctor(request.user, doctor):
        return Response({'success': False, 'message': 'Forbidden'}, status=403)
    qs = Leave.objects.filter(doctor=doctor).order_by('-created_at')
    return Response([leave_data(lv) for lv in qs])


@api_view(['PUT'])
@permission_classes([IsHospital])
def decide_leave(request, doctor_id, leave_id):
    s = LeaveDecisionSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data

    leave = get_object_or_404(Leave, pk=leave_id, doctor_id=doctor_id)
    if not may_manage_hospital(request.user, leave.hospital_id):
        return Response({'success': False, 'message': 'Forbidden'}, status=403)

    leave.status = vd['status']
    leave.approved_by = request.user.ref
    leave.approved_at = timezone.now()
    if leave.status == Leave.REJECTED and vd.get('rejectionReason'):
        leave.rejection_reason = vd['rejectionReason']
    if vd.get('remarks'):
        leave.remarks = vd['remarks']
    leave.save()

    emit_to_all('leave:updated', {
        'leaveId': leave.leave_id,
        'doctorId': leave.doctor_id,
        'status': leave.status,
        'approvedBy': leave.approved_by,
    })
    return Response({'success': True, 'leave': leave_data(leave), 'message': f"Leave {leave.status.lower()} successfully"})

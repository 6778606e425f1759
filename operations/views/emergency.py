"""
Emergency requests from intake to hand-over.

Each status change is appended to the request's timeline and sent to the
hospital room; once an ambulance is assigned its room gets the update
too, so the crew's tablet follows along.
"""
import logging
import time

from django.conf import settings
from django.db import transaction
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from operations.models import Ambulance, EmergencyRequest, Hospital
from operations.permissions import IsHospital, may_manage_hospital, may_operate_ambulance
from operations.realtime.emit import emit_to_ambulance, emit_to_hospital
from operations.serializers.fleet import EmergencyCreateSerializer, EmergencyStatusSerializer, emergency_data
from operations.services.geo import distance_meters, eta_minutes

logger = logging.getLogger(__name__)

# vehicle status implied by the request status
AMBULANCE_STATUS_FOR = {
    'Dispatched': 'En Route',
    'En Route': 'En Route',
    'At Scene': 'At Scene',
    'Transporting': 'Transporting',
    'Arrived': 'Available',
    'Completed': 'Available',
    'Rejected': 'Available',
}
CLOSED = {'Arrived', 'Completed', 'Rejected'}


def _timeline_entry(status, by, note=''):
    return {'status': status, 'at': timezone.now().isoformat(), 'by': by, 'note': note}


def _estimate(ambulance, patient):
    loc = (patient or {}).get('location')
    if ambulance is None or ambulance.location is None or not loc:
        return None
    meters = distance_meters(ambulance.lat, ambulance.lng, loc['lat'], loc['lng'])
    return eta_minutes(meters, getattr(settings, 'AMBULANCE_AVG_SPEED_KMH', 40))


def _assign(emergency, ambulance):
    emergency.assigned_ambulance = ambulance
    emergency.eta_minutes = _estimate(ambulance, emergency.patient)
    emergency.dispatched_at = emergency.dispatched_at or timezone.now()
    ambulance.current_emergency_id = emergency.emergency_id
    ambulance.status = 'En Route'
    ambulance.save(update_fields=['current_emergency_id', 'status', 'updated_at'])


def _may_raise(user, hospital_id):
    if may_manage_hospital(user, hospital_id):
        return True
    return getattr(user, 'is_crew', False) and user.hospital_id == hospital_id


def _may_update(user, emergency):
    if may_manage_hospital(user, emergency.hospital_id):
        return True
    amb = emergency.assigned_ambulance
    return amb is not None and may_operate_ambulance(user, amb)


def _notify(emergency, event):
    payload = emergency_data(emergency)
    emit_to_hospital(emergency.hospital_id, event, payload)
    if emergency.assigned_ambulance_id:
        emit_to_ambulance(emergency.assigned_ambulance_id, event, payload)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def create_emergency(request):
    s = EmergencyCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data

    hospital = get_object_or_404(Hospital, pk=vd['hospitalId'])
    if not _may_raise(request.user, hospital.hospital_id):
        return Response({'success': False, 'message': 'Forbidden'}, status=403)

    ambulance = None
    if vd.get('ambulanceId'):
        ambulance = Ambulance.objects.filter(pk=vd['ambulanceId'], hospital=hospital).first()
        if ambulance is None:
            return Response({'success': False, 'message': 'Ambulance not found for this hospital'}, status=404)

    emergency = EmergencyRequest(
        emergency_id=f"EMG-{hospital.hospital_id}-{int(time.time() * 1000)}",
        hospital=hospital,
        patient=vd['patient'],
        emergency_type=vd['emergencyType'],
        severity=vd.get('severity', 'Medium'),
        description=vd.get('description', ''),
        timeline=[_timeline_entry('Pending', request.user.ref)],
    )
    if ambulance is not None:
        emergency.status = 'Dispatched'
        emergency.timeline.append(_timeline_entry('Dispatched', request.user.ref))
        _assign(emergency, ambulance)
    emergency.save()

    _notify(emergency, 'emergency:new')
    logger.info("emergency %s raised at %s (%s)", emergency.emergency_id, hospital.hospital_id, emergency.severity)
    return Response({'success': True, 'emergency': emergency_data(emergency)}, status=201)


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def update_emergency_status(request, emergency_id):
    with transaction.atomic():
        # Lock the request row so concurrent updates append in turn
        emergency = get_object_or_404(EmergencyRequest.objects.select_for_update(), pk=emergency_id)
        if not _may_update(request.user, emergency):
            return Response({'success': False, 'message': 'Forbidden'}, status=403)
        if emergency.status in CLOSED:
            return Response({'success': False, 'message': f'Emergency is already {emergency.status.lower()}'}, status=400)

        s = EmergencyStatusSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        vd = s.validated_data

        if vd.get('ambulanceId'):
            if not may_manage_hospital(request.user, emergency.hospital_id):
                return Response({'success': False, 'message': 'Only the hospital can assign ambulances'}, status=403)
            ambulance = get_object_or_404(
                Ambulance.objects.select_for_update(), pk=vd['ambulanceId'], hospital_id=emergency.hospital_id
            )
            _assign(emergency, ambulance)

        emergency.status = vd['status']
        emergency.timeline = list(emergency.timeline) + [
            _timeline_entry(emergency.status, request.user.ref, vd.get('note', ''))
        ]
        if emergency.status == 'Rejected':
            emergency.rejection_reason = vd.get('rejectionReason', '')
            emergency.alternate_hospitals = vd.get('alternateHospitals', [])
        if emergency.status in CLOSED:
            emergency.completed_at = timezone.now()
        emergency.save()

        if emergency.assigned_ambulance_id and emergency.status in AMBULANCE_STATUS_FOR:
            amb = Ambulance.objects.select_for_update().get(pk=emergency.assigned_ambulance_id)
            amb.status = AMBULANCE_STATUS_FOR[emergency.status]
            if emergency.status in CLOSED:
                amb.current_emergency_id = ''
            amb.save(update_fields=['status', 'current_emergency_id', 'updated_at'])

    _notify(emergency, 'emergency:update')
    return Response({'success': True, 'emergency': emergency_data(emergency)})


@api_view(['GET'])
@permission_classes([IsHospital])
def hospital_emergencies(request, hospital_id):
    """Requests for a hospital, newest first; ``?status=`` filters, ``?active=1`` hides closed ones."""
    if not may_manage_hospital(request.user, hospital_id):
        return Response({'success': False, 'message': 'Forbidden'}, status=403)
    qs = EmergencyRequest.objects.filter(hospital_id=hospital_id).order_by('-created_at')
    if request.query_params.get('status'):
        qs = qs.filter(status=request.query_params['status'])
    if (request.query_params.get('active') or '0') in ['1', 'true', 'True']:
        qs = qs.exclude(status__in=CLOSED)
    return Response([emergency_data(e) for e in qs])

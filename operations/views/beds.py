"""
Bed inventory and the Occupied -> Cleaning -> Vacant turnover.

Every status change goes to the owning hospital's room in full and to
all clients as a public update without the patient's name.
"""
import logging

from django.db.models import Count
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from operations.models import Bed, Hospital
from operations.permissions import IsHospital, may_manage_hospital
from operations.realtime.emit import emit_dual, emit_to_hospital
from operations.serializers.network import BedCreateSerializer, BedStatusSerializer, DischargeSerializer, bed_data

logger = logging.getLogger(__name__)


def _status_payload(bed):
    return {
        'bedId': bed.bed_id,
        'hospitalId': bed.hospital_id,
        'bedType': bed.bed_type,
        'status': bed.status,
        'occupiedBy': bed.occupied_by or None,
        'lastUpdated': bed.last_updated,
    }


@api_view(['GET'])
@permission_classes([AllowAny])
def list_beds(request, hospital_id):
    """All beds of a hospital plus counts per status."""
    get_object_or_404(Hospital, pk=hospital_id)
    beds = Bed.objects.filter(hospital_id=hospital_id).order_by('bed_id')
    counts = {s: 0 for s, _ in Bed.STATUS_CHOICES}
    for row in beds.values('status').annotate(n=Count('bed_id')):
        counts[row['status']] = row['n']
    return Response({
        'success': True,
        'beds': [bed_data(b) for b in beds],
        'counts': counts,
        'total': sum(counts.values()),
    })


@api_view(['POST'])
@permission_classes([IsHospital])
def create_bed(request):
    s = BedCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data

    if not may_manage_hospital(request.user, vd['hospitalId']):
        return Response({'success': False, 'message': 'Forbidden'}, status=403)
    if Bed.objects.filter(pk=vd['bedId']).exists():
        return Response({'success': False, 'message': 'Bed ID already exists'}, status=400)

    bed = Bed.objects.create(
        bed_id=vd['bedId'],
        hospital_id=vd['hospitalId'],
        bed_number=vd['bedNumber'],
        ward_number=vd.get('wardNumber', ''),
        bed_type=vd.get('bedType', 'General'),
        last_updated=timezone.now(),
    )
    emit_dual(bed.hospital_id, 'bed:update', 'bed:publicUpdate', _status_payload(bed))
    return Response({'success': True, 'bed': bed_data(bed)}, status=201)


@api_view(['PUT'])
@permission_classes([IsHospital])
def update_bed_status(request, bed_id):
    bed = get_object_or_404(Bed, pk=bed_id)
    if not may_manage_hospital(request.user, bed.hospital_id):
        return Response({'success': False, 'message': 'Forbidden'}, status=403)

    s = BedStatusSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data

    now = timezone.now()
    bed.status = vd['status']
    if bed.status == Bed.OCCUPIED:
        bed.occupied_by = vd.get('patientName', '') or bed.occupied_by
        bed.occupied_at = bed.occupied_at or now
    elif bed.status == Bed.VACANT:
        bed.occupied_by = ''
        bed.occupied_at = None
    bed.last_updated = now
    bed.save()

    emit_dual(bed.hospital_id, 'bed:update', 'bed:publicUpdate', _status_payload(bed))
    logger.info("bed %s -> %s", bed.bed_id, bed.status)
    return Response({'success': True, 'bed': bed_data(bed)})


@api_view(['POST'])
@permission_classes([IsHospital])
def discharge_bed(request, bed_id):
    bed = get_object_or_404(Bed, pk=bed_id)
    if not may_manage_hospital(request.user, bed.hospital_id):
        return Response({'success': False, 'message': 'Forbidden'}, status=403)
    if bed.status != Bed.OCCUPIED:
        return Response({'success': False, 'message': 'Only occupied beds can be discharged'}, status=400)

    s = DischargeSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data

    now = timezone.now()
    patient = bed.occupied_by
    bed.status = Bed.CLEANING
    bed.discharged_at = now
    bed.discharged_by = request.user.ref
    bed.discharge_reason = vd.get('reason', '')
    bed.discharge_notes = vd.get('notes', '')
    bed.cleaning_started_at = now
    bed.cleaning_started_by = request.user.ref
    bed.cleaning_completed_at = None
    bed.cleaning_completed_by = ''
    bed.cleaning_expected_minutes = vd.get('expectedCleaningMinutes', 30)
    bed.occupied_by = ''
    bed.occupied_at = None
    bed.last_updated = now
    bed.save()

    emit_to_hospital(bed.hospital_id, 'bed:discharged', {
        'bedId': bed.bed_id,
        'hospitalId': bed.hospital_id,
        'patientName': patient or None,
        'dischargedAt': now,
        'expectedCleaningMinutes': bed.cleaning_expected_minutes,
    })
    return Response({'success': True, 'bed': bed_data(bed), 'message': 'Patient discharged, bed moved to cleaning'})


@api_view(['POST'])
@permission_classes([IsHospital])
def mark_bed_cleaned(request, bed_id):
    bed = get_object_or_404(Bed, pk=bed_id)
    if not may_manage_hospital(request.user, bed.hospital_id):
        return Response({'success': False, 'message': 'Forbidden'}, status=403)
    if bed.status != Bed.CLEANING:
        return Response({'success': False, 'message': 'Bed is not being cleaned'}, status=400)

    now = timezone.now()
    bed.status = Bed.VACANT
    bed.cleaning_completed_at = now
    bed.cleaning_completed_by = request.user.ref
    bed.last_updated = now
    bed.save()

    minutes = None
    if bed.cleaning_started_at:
        minutes = round((now - bed.cleaning_started_at).total_seconds() / 60)
    payload = _status_payload(bed)
    payload.update(cleanedAt=now, cleaningMinutes=minutes)
    emit_dual(bed.hospital_id, 'bed:cleaned', 'bed:publicUpdate', payload)
    return Response({'success': True, 'bed': bed_data(bed)})

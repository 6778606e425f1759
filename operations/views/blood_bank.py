"""
Blood stock per hospital.

Stock is kept as batches; a blood type's level is the sum of its
available, unexpired batches.  Falling below ``BLOOD_LOW_STOCK_UNITS``
raises a ``blood:low-stock`` alert to the hospital, flagged critical
below ``BLOOD_CRITICAL_UNITS``.
"""
import logging
import time
from datetime import timedelta

from django.conf import settings
from django.db import transaction
from django.db.models import Sum
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from operations.models import BLOOD_TYPES, BloodBank
from operations.permissions import IsHospital, may_manage_hospital
from operations.realtime.emit import emit_to_hospital
from operations.serializers.supplies import BloodAddSerializer, BloodUseSerializer, blood_data

logger = logging.getLogger(__name__)


def _usable(hospital_id):
    return BloodBank.objects.filter(
        hospital_id=hospital_id,
        status='Available',
        expiry_date__gt=timezone.localdate(),
    )


def units_of(hospital_id, blood_type) -> int:
    return _usable(hospital_id).filter(blood_type=blood_type).aggregate(n=Sum('quantity'))['n'] or 0


def stock_level(total: int):
    """``'critical'``, ``'low'`` or None for a healthy level."""
    if total < settings.BLOOD_CRITICAL_UNITS:
        return 'critical'
    if total < settings.BLOOD_LOW_STOCK_UNITS:
        return 'low'
    return None


def _alert_if_low(hospital_id, blood_type, total):
    level = stock_level(total)
    if level is None:
        return
    emit_to_hospital(hospital_id, 'blood:low-stock', {
        'hospitalId': hospital_id,
        'bloodType': blood_type,
        'totalUnits': total,
        'critical': level == 'critical',
    })


@api_view(['GET'])
@permission_classes([AllowAny])
def blood_summary(request, hospital_id):
    summary = {t: 0 for t in BLOOD_TYPES}
    for row in _usable(hospital_id).values('blood_type').annotate(n=Sum('quantity')):
        summary[row['blood_type']] = row['n'] or 0
    return Response({
        'success': True,
        'summary': summary,
        'totalUnits': sum(summary.values()),
        'batches': _usable(hospital_id).count(),
    })


@api_view(['POST'])
@permission_classes([IsHospital])
def add_blood(request):
    s = BloodAddSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data

    hospital_id = vd['hospitalId']
    if not may_manage_hospital(request.user, hospital_id):
        return Response({'success': False, 'message': 'Forbidden'}, status=403)

    blood = BloodBank.objects.create(
        blood_bank_id=f"BLOOD-{hospital_id}-{vd['bloodType']}-{int(time.time() * 1000)}",
        hospital_id=hospital_id,
        blood_type=vd['bloodType'],
        quantity=vd['quantity'],
        expiry_date=vd['expiryDate'],
        donor_info=vd.get('donorInfo') or {},
        notes=vd.get('notes', ''),
        added_by=request.user.ref,
    )
    total = units_of(hospital_id, blood.blood_type)

    emit_to_hospital(hospital_id, 'blood:added', {
        'hospitalId': hospital_id,
        'bloodType': blood.blood_type,
        'quantity': blood.quantity,
        'totalUnits': total,
        'lowStock': stock_level(total) is not None,
    })
    _alert_if_low(hospital_id, blood.blood_type, total)
    return Response({
        'success': True,
        'blood': blood_data(blood),
        'totalUnits': total,
        'message': f"Added {blood.quantity} units of {blood.blood_type}. Total: {total} units",
    }, status=201)


@api_view(['PUT'])
@permission_classes([IsHospital])
def use_blood(request, blood_id):
    with transaction.atomic():
        # Lock the batch so concurrent draws see each other's decrement
        blood = get_object_or_404(BloodBank.objects.select_for_update(), pk=blood_id)
        if not may_manage_hospital(request.user, blood.hospital_id):
            return Response({'success': False, 'message': 'Forbidden'}, status=403)
        if blood.status != 'Available':
            return Response({'success': False, 'message': 'Blood unit not available'}, status=400)

        s = BloodUseSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        vd = s.validated_data

        used = vd.get('unitsUsed') or blood.quantity
        if used > blood.quantity:
            return Response({'success': False, 'message': 'Not enough units available'}, status=400)

        now = timezone.now()
        blood.quantity -= used
        if blood.quantity == 0:
            blood.status = 'Used'
        blood.used_at = now
        blood.used_for = {
            'emergencyId': vd.get('emergencyId') or None,
            'patientName': vd.get('patientName') or None,
            'usedAt': now.isoformat(),
            'usedBy': request.user.ref,
            'units': used,
        }
        blood.save()

    remaining = units_of(blood.hospital_id, blood.blood_type)

    emit_to_hospital(blood.hospital_id, 'blood:used', {
        'hospitalId': blood.hospital_id,
        'bloodType': blood.blood_type,
        'unitsUsed': used,
        'remainingUnits': remaining,
        'emergencyId': vd.get('emergencyId') or None,
        'patientName': vd.get('patientName') or None,
    })
    _alert_if_low(blood.hospital_id, blood.blood_type, remaining)
    return Response({
        'success': True,
        'blood': blood_data(blood),
        'remainingUnits': remaining,
        'message': f"Used {used} units of {blood.blood_type}. Remaining: {remaining} units",
    })


@api_view(['GET'])
@permission_classes([AllowAny])
def blood_alerts(request, hospital_id):
    alerts = []
    for blood_type in BLOOD_TYPES:
        total = units_of(hospital_id, blood_type)
        level = stock_level(total)
        if level:
            alerts.append({'bloodType': blood_type, 'totalUnits': total, 'level': level})
    return Response({'success': True, 'alerts': alerts})


@api_view(['GET'])
@permission_classes([AllowAny])
def blood_expiring(request, hospital_id):
    """Available batches expiring within the next 30 days, soonest first."""
    today = timezone.localdate()
    qs = _usable(hospital_id).filter(expiry_date__lt=today + timedelta(days=30)).order_by('expiry_date')
    return Response({'success': True, 'expiringBlood': [blood_data(b) for b in qs]})


@api_view(['GET'])
@permission_classes([IsHospital])
def blood_history(request, hospital_id):
    if not may_manage_hospital(request.user, hospital_id):
        return Response({'success': False, 'message': 'Forbidden'}, status=403)
    try:
        limit = int(request.query_params.get('limit') or 20)
    except ValueError:
        return Response({'success': False, 'message': 'limit must be a number'}, status=400)
    qs = BloodBank.objects.filter(hospital_id=hospital_id, used_at__isnull=False).order_by('-used_at')[:max(limit, 1)]
    return Response({'success': True, 'history': [blood_data(b) for b in qs]})

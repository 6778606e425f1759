import logging

from django.conf import settings
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from operations.models import EMT, Ambulance, Driver
from operations.permissions import IsCrew, IsHospital, may_manage_hospital, may_operate_ambulance
from operations.realtime.emit import emit_to_ambulance, emit_to_hospital
from operations.serializers.fleet import (
    AmbulanceCreateSerializer,
    AmbulanceLocationSerializer,
    DriverCreateSerializer,
    EMTCreateSerializer,
    EtaQuerySerializer,
    ambulance_data,
    crew_data,
)
from operations.services.geo import distance_meters, eta_minutes

logger = logging.getLogger(__name__)


@api_view(['GET'])
@permission_classes([AllowAny])
def list_ambulances(request, hospital_id):
    user = request.user
    if getattr(user, 'role', None) == 'hospital' and user.ref != hospital_id:
        return Response({'success': False, 'message': 'Forbidden'}, status=403)
    qs = Ambulance.objects.filter(hospital_id=hospital_id).order_by('ambulance_id')
    return Response([ambulance_data(a) for a in qs])


@api_view(['POST'])
@permission_classes([IsHospital])
def create_ambulance(request):
    s = AmbulanceCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data

    if not may_manage_hospital(request.user, vd['hospitalId']):
        return Response({
            'success': False,
            'message': f"Forbidden: Your hospital ID ({request.user.ref}) does not match the request ({vd['hospitalId']})",
        }, status=403)
    if Ambulance.objects.filter(pk=vd['ambulanceId']).exists():
        return Response({'success': False, 'message': 'Ambulance ID already exists'}, status=400)

    amb = Ambulance.objects.create(
        ambulance_id=vd['ambulanceId'],
        hospital_id=vd['hospitalId'],
        vehicle_number=vd['vehicleNumber'],
        vehicle_type=vd.get('vehicleType', 'BLS'),
        equipment=vd.get('equipment', []),
        status='Offline',
        password=settings.DEFAULT_STAFF_PASSWORD,
        force_password_change=True,
    )
    logger.info("ambulance %s registered at %s", amb.ambulance_id, amb.hospital_id)
    return Response({'success': True, 'ambulance': ambulance_data(amb)}, status=201)


def _register_crew(request, serializer_class, model, id_field, pk_name):
    s = serializer_class(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data

    if not may_manage_hospital(request.user, vd['hospitalId']):
        return Response({'success': False, 'message': 'Forbidden'}, status=403)
    if model.objects.filter(pk=vd[id_field]).exists():
        return Response({'success': False, 'message': f'{id_field} already exists'}, status=400)

    ambulance = None
    if vd.get('ambulanceId'):
        ambulance = Ambulance.objects.filter(pk=vd['ambulanceId'], hospital_id=vd['hospitalId']).first()
        if ambulance is None:
            return Response({'success': False, 'message': 'Ambulance not found for this hospital'}, status=404)

    fields = {
        pk_name: vd[id_field],
        'hospital_id': vd['hospitalId'],
        'ambulance': ambulance,
        'name': vd['name'],
        'mobile': vd['mobile'],
        'license_number': vd['licenseNumber'],
        'license_expiry_date': vd.get('licenseExpiryDate'),
        'password': settings.DEFAULT_STAFF_PASSWORD,
        'force_password_change': True,
    }
    if model is EMT:
        fields['qualification'] = vd['qualification']
    else:
        fields['license_type'] = vd.get('licenseType') or 'Commercial'
    member = model.objects.create(**fields)
    return Response({'success': True, 'member': crew_data(member)}, status=201)


@api_view(['POST'])
@permission_classes([IsHospital])
def register_emt(request):
    return _register_crew(request, EMTCreateSerializer, EMT, 'emtId', 'emt_id')


@api_view(['POST'])
@permission_classes([IsHospital])
def register_driver(request):
    return _register_crew(request, DriverCreateSerializer, Driver, 'driverId', 'driver_id')


@api_view(['GET'])
@permission_classes([AllowAny])
def list_emts(request, hospital_id):
    return Response([crew_data(m) for m in EMT.objects.filter(hospital_id=hospital_id).order_by('emt_id')])


@api_view(['GET'])
@permission_classes([AllowAny])
def list_drivers(request, hospital_id):
    return Response([crew_data(m) for m in Driver.objects.filter(hospital_id=hospital_id).order_by('driver_id')])


@api_view(['PUT'])
@permission_classes([IsCrew])
def update_location(request, ambulance_id):
    """GPS fix from the vehicle: the hospital room gets both location events, the crew room a copy of the fix."""
    amb = get_object_or_404(Ambulance, pk=ambulance_id)
    if not may_operate_ambulance(request.user, amb):
        return Response({'success': False, 'message': 'Forbidden'}, status=403)

    s = AmbulanceLocationSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data

    now = timezone.now()
    amb.lat = vd['lat']
    amb.lng = vd['lng']
    amb.last_location_update = now
    if vd.get('status'):
        amb.status = vd['status']
    amb.save()

    location = {'lat': amb.lat, 'lng': amb.lng}
    emit_to_hospital(amb.hospital_id, 'ambulance:location-update', {
        'ambulanceId': amb.ambulance_id,
        'hospitalId': amb.hospital_id,
        'status': amb.status,
        'location': location,
        'timestamp': now,
    })
    fix = {'ambulanceId': amb.ambulance_id, 'lat': amb.lat, 'lng': amb.lng}
    emit_to_hospital(amb.hospital_id, 'ambulance:location', fix)
    # crew tablet keeps its own copy
    emit_to_ambulance(amb.ambulance_id, 'ambulance:location', fix)
    return Response({'success': True, 'location': location})

update_location.cls.throttle_scope = 'location'


@api_view(['GET'])
@permission_classes([AllowAny])
def ambulance_eta(request, ambulance_id):
    amb = get_object_or_404(Ambulance, pk=ambulance_id)
    if amb.location is None:
        return Response({'success': False, 'message': 'Ambulance location not available'}, status=400)

    q = EtaQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)

    distance = distance_meters(amb.lat, amb.lng, q.validated_data['destLat'], q.validated_data['destLng'])
    return Response({
        'success': True,
        'distance': distance,
        'distanceKm': f"{distance / 1000:.2f}",
        'etaMinutes': eta_minutes(distance, getattr(settings, 'AMBULANCE_AVG_SPEED_KMH', 40)),
        'ambulanceLocation': amb.location,
    })

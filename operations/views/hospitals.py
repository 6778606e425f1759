import logging

from django.shortcuts import get_object_or_404
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from operations.models import Hospital
from operations.permissions import may_manage_hospital
from operations.realtime.emit import emit_dual
from operations.serializers.network import HospitalUpdateSerializer, hospital_data

logger = logging.getLogger(__name__)

FIELD_MAP = {
    'name': 'name',
    'contact': 'contact',
    'address': 'address',
    'services': 'services',
    'facilities': 'facilities',
    'insurance': 'insurance',
    'treatment': 'treatment',
    'surgery': 'surgery',
    'therapy': 'therapy',
}


@api_view(['GET'])
@permission_classes([AllowAny])
def list_hospitals(request):
    return Response([hospital_data(h) for h in Hospital.objects.order_by('hospital_id')])


@api_view(['GET', 'PUT'])
@permission_classes([AllowAny])
def hospital_detail(request, hospital_id):
    hospital = get_object_or_404(Hospital, pk=hospital_id)
    if request.method == 'GET':
        return Response(hospital_data(hospital))
    return _update_hospital(request, hospital)


def _update_hospital(request, hospital):
    if not getattr(request.user, 'is_authenticated', False):
        return Response({'success': False, 'message': 'Authentication credentials were not provided.'}, status=401)
    if not may_manage_hospital(request.user, hospital.hospital_id):
        return Response({'success': False, 'message': 'Forbidden'}, status=403)

    s = HospitalUpdateSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    vd = s.validated_data

    update_fields = ['updated_at']
    updates = {}
    for key, attr in FIELD_MAP.items():
        if key in vd:
            setattr(hospital, attr, vd[key])
            update_fields.append(attr)
            updates[key] = vd[key]
    if 'location' in vd:
        hospital.lat = vd['location']['lat']
        hospital.lng = vd['location']['lng']
        update_fields += ['lat', 'lng']
        updates['location'] = dict(vd['location'])
    hospital.save(update_fields=update_fields)

    emit_dual(hospital.hospital_id, 'hospital:update', 'hospital:publicUpdate', {
        'hospitalId': hospital.hospital_id,
        'updates': updates,
    })
    logger.info("hospital %s updated: %s", hospital.hospital_id, sorted(updates))
    return Response({'success': True, 'hospital': hospital_data(hospital)})

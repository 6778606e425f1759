import logging
import time
from datetime import timedelta

from django.conf import settings
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from operations.models import Announcement
from operations.permissions import IsHospital, may_manage_hospital
from operations.realtime.emit import emit_to_all
from operations.serializers.supplies import AnnouncementSerializer, announcement_data

logger = logging.getLogger(__name__)


def _broadcast(event, a):
    emit_to_all(event, {
        'hospitalId': a.hospital_id,
        'announcementId': a.announcement_id,
        'title': a.title,
        'content': a.content,
        'type': a.type,
        'priority': a.priority,
        'expiresAt': a.expires_at,
    })


def _active_for(hospital_id):
    """Latest ten active, unexpired announcements of a hospital."""
    qs = (Announcement.objects
          .select_related('hospital')
          .filter(hospital_id=hospital_id, is_active=True, expires_at__gt=timezone.now())
          .order_by('-created_at')[:10])
    return Response({'success': True, 'announcements': [announcement_data(a) for a in qs]})


@api_view(['POST'])
@permission_classes([IsHospital])
def post_announcement(request):
    s = AnnouncementSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data

    hospital_id = vd.get('hospitalId') or request.user.ref
    if not may_manage_hospital(request.user, hospital_id):
        return Response({'success': False, 'message': 'Forbidden'}, status=403)

    ttl = getattr(settings, 'ANNOUNCEMENT_TTL_HOURS', 24)
    a = Announcement.objects.create(
        announcement_id=f"ANN-{hospital_id}-{int(time.time() * 1000)}",
        hospital_id=hospital_id,
        title=vd['title'],
        content=vd['content'],
        type=vd.get('type', 'General'),
        priority=vd.get('priority', 'Medium'),
        created_by=request.user.ref,
        expires_at=timezone.now() + timedelta(hours=ttl),
    )
    _broadcast('announcement:posted', a)
    return Response({
        'success': True,
        'announcement': announcement_data(a),
        'message': f'Announcement posted successfully. Will expire in {ttl} hours.',
    }, status=201)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([AllowAny])
def announcement_resource(request, key):
    """GET lists a hospital's board (``key`` is the hospital id); PUT and DELETE edit one announcement."""
    if request.method == 'GET':
        return _active_for(key)
    if getattr(request.user, 'role', None) != 'hospital':
        return Response({'success': False, 'message': 'Forbidden'}, status=403 if request.user else 401)

    a = get_object_or_404(Announcement.objects.select_related('hospital'), pk=key)
    if not may_manage_hospital(request.user, a.hospital_id):
        return Response({'success': False, 'message': 'Forbidden'}, status=403)

    if request.method == 'DELETE':
        a.is_active = False
        a.save(update_fields=['is_active', 'updated_at'])
        emit_to_all('announcement:deleted', {'hospitalId': a.hospital_id, 'announcementId': a.announcement_id})
        return Response({'success': True, 'message': 'Announcement deleted successfully'})

    s = AnnouncementSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    for field in ('title', 'content', 'type', 'priority'):
        if field in s.validated_data:
            setattr(a, field, s.validated_data[field])
    a.save()
    _broadcast('announcement:updated', a)
    return Response({'success': True, 'announcement': announcement_data(a), 'message': 'Announcement updated successfully'})

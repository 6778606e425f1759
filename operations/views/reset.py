import logging

from django.conf import settings
from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from operations.realtime.emit import emit_to_all
from operations.services.reset import reset_network

logger = logging.getLogger(__name__)


@api_view(['POST'])
@permission_classes([AllowAny])
def reset_database(request):
    """Re-seed the demo network. Disabled unless ALLOW_DATABASE_RESET is on."""
    if not settings.ALLOW_DATABASE_RESET:
        return Response({'success': False, 'message': 'Database reset is disabled'}, status=403)

    logger.warning("database reset requested from %s", request.META.get('REMOTE_ADDR'))
    counts = reset_network()
    emit_to_all('database:reset', {
        'message': 'Database has been reset with fresh dummy data',
        'timestamp': timezone.now(),
        'counts': counts,
    })
    return Response({'success': True, 'message': 'Database reset successfully', 'counts': counts})

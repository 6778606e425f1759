from django.db import connections
from django.http import JsonResponse

from operations.realtime import hub


def healthz(request):
    try:
        with connections['default'].cursor() as c:
            c.execute('SELECT 1')
            row = c.fetchone()
        return JsonResponse({
            'success': True,
            'db': bool(row and row[0] == 1),
            'sockets': len(hub.connections),
        })
    except Exception as e:
        return JsonResponse({'success': False, 'message': str(e)}, status=500)

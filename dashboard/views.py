# Dashboard views for platform-wide statistics
from django.contrib.auth import get_user_model
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ratings.models import Rating
from stores.models import Store
from users.permissions import IsAdmin

User = get_user_model()


def dashboard_counts():
    """Full-table counts, recomputed on every call"""
    return {
        'totalUsers': User.objects.count(),
        'totalStores': Store.objects.count(),
        'totalRatings': Rating.objects.count(),
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdmin])
def dashboard_stats(request):
    """
    Get admin dashboard statistics
    """
    return Response(dashboard_counts())

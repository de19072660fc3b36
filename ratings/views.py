from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from stores.models import Store
from users.permissions import IsStoreUser
from .serializers import RatingSerializer, RatingSubmitSerializer, RatingUpdateSerializer
from .utils import get_user_store_rating, submit_rating, update_rating


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStoreUser])
def submit_rating_view(request):
    """Rate a store for the first time"""
    serializer = RatingSubmitSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    store = Store.objects.filter(pk=data['storeId']).first()
    if store is None:
        raise NotFound('Store not found.')

    rating = submit_rating(request.user, store, data['rating'], data.get('comment'))
    return Response(
        {'message': 'Rating submitted successfully.', 'rating': RatingSerializer(rating).data},
        status=status.HTTP_201_CREATED
    )


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated, IsStoreUser])
def rating_detail_view(request, store_id):
    """
    GET: the caller's rating of the store
    PUT: change that rating (it must already exist)
    """
    if request.method == 'GET':
        rating = get_user_store_rating(request.user, store_id)
        return Response(RatingSerializer(rating).data)

    serializer = RatingUpdateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    rating = update_rating(request.user, store_id, data['rating'], data.get('comment'))
    return Response({'message': 'Rating updated successfully.', 'rating': RatingSerializer(rating).data})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStoreUser])
def user_store_rating_view(request, store_id):
    rating = get_user_store_rating(request.user, store_id)
    return Response(RatingSerializer(rating).data)

from django.db.models import Avg, OuterRef, Subquery
from rest_framework import generics, status, viewsets
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend

from ratings.models import Rating
from ratings.serializers import StoreRatingSerializer
from ratings.utils import average_rating, ratings_for_store
from users.filters import SortByFilter
from users.permissions import IsAdmin, IsOwner
from .filters import StoreFilter
from .models import Store
from .serializers import (
    OwnerStoreSerializer, StoreCreateUpdateSerializer, StoreSerializer,
    StoreWithUserRatingSerializer
)
from .utils import delete_store_with_ratings, get_owned_store

NO_STORE_MESSAGE = 'No store found for this owner.'


def stores_with_average():
    return Store.objects.annotate(avg_rating=Avg('ratings__rating'))


class StoreViewSet(viewsets.ModelViewSet):
    """Store management (Admin only)"""
    permission_classes = [IsAuthenticated, IsAdmin]
    filter_backends = [DjangoFilterBackend, SortByFilter]
    filterset_class = StoreFilter
    ordering_fields = ['name', 'email']
    ordering = 'name'

    def get_queryset(self):
        return stores_with_average()

    def get_serializer_class(self):
        if self.action in ['create', 'update', 'partial_update']:
            return StoreCreateUpdateSerializer
        return StoreSerializer

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(
            {'message': 'Store created successfully.', 'store': serializer.data},
            status=status.HTTP_201_CREATED
        )

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        serializer = self.get_serializer(self.get_object(), data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response({'message': 'Store updated successfully.', 'store': serializer.data})

    def destroy(self, request, *args, **kwargs):
        ratings_deleted = delete_store_with_ratings(self.get_object())
        return Response({
            'message': 'Store deleted successfully.',
            'ratingsDeleted': ratings_deleted,
        })


class StoreListView(generics.ListAPIView):
    """Browse stores with average rating and the caller's own rating"""
    serializer_class = StoreWithUserRatingSerializer
    permission_classes = [IsAuthenticated]
    filter_backends = [DjangoFilterBackend, SortByFilter]
    filterset_class = StoreFilter
    ordering_fields = ['name', 'email']
    ordering = 'name'

    def get_queryset(self):
        own_rating = Rating.objects.filter(
            store=OuterRef('pk'), user=self.request.user
        ).values('rating')[:1]
        return stores_with_average().annotate(user_rating=Subquery(own_rating))


def get_owner_store_or_404(user):
    store = get_owned_store(user)
    if store is None:
        raise NotFound(NO_STORE_MESSAGE)
    return store


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsOwner])
def owner_store_view(request):
    """The store run by the calling owner"""
    store = get_owner_store_or_404(request.user)
    return Response(OwnerStoreSerializer(store).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsOwner])
def owner_average_view(request):
    store = get_owner_store_or_404(request.user)
    average = average_rating(store)
    return Response({'averageRating': None if average is None else str(average)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsOwner])
def owner_ratings_view(request):
    """Who rated the owner's store, and how"""
    store = get_owner_store_or_404(request.user)
    serializer = StoreRatingSerializer(ratings_for_store(store), many=True)
    return Response(serializer.data)

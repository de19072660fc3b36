from django.urls import path
from rest_framework.routers import DefaultRouter
from . import views

router = DefaultRouter(trailing_slash=False)
router.include_root_view = False
router.register(r'admin/stores', views.StoreViewSet, basename='admin-store')

urlpatterns = [
    path('stores', views.StoreListView.as_view(), name='store-list'),

    # Owner dashboard
    path('owner/store', views.owner_store_view, name='owner-store'),
    path('owner/average', views.owner_average_view, name='owner-average'),
    path('owner/ratings', views.owner_ratings_view, name='owner-ratings'),
] + router.urls

from django.urls import path
from . import views

urlpatterns = [
    path('ratings', views.submit_rating_view, name='rating-submit'),
    path('ratings/<int:store_id>', views.rating_detail_view, name='rating-detail'),

    # Aliases used by the user dashboard
    path('user/rate', views.submit_rating_view, name='user-rate'),
    path('user/rate/<int:store_id>', views.user_store_rating_view, name='user-rate-detail'),
]

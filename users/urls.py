from django.urls import path
from . import views

urlpatterns = [
    # Auth endpoints
    path('register', views.register_view, name='register'),
    path('login', views.login_view, name='login'),
    path('logout', views.logout_view, name='logout'),
    path('me', views.current_user_view, name='current-user'),

    # Password change, one endpoint per role
    path('admin/update-password', views.admin_update_password_view, name='admin-update-password'),
    path('owner/update-password', views.owner_update_password_view, name='owner-update-password'),
    path('user/update-password', views.user_update_password_view, name='user-update-password'),

    # User management (Admin only)
    path('admin/users', views.UserListCreateView.as_view(), name='user-list-create'),
    path('admin/users/<int:pk>', views.UserDetailView.as_view(), name='user-detail'),
]

from django.contrib import admin
from .models import Rating


@admin.register(Rating)
class RatingAdmin(admin.ModelAdmin):
    list_display = ['store', 'user', 'rating', 'created_at', 'updated_at']
    list_filter = ['rating', 'created_at']
    search_fields = ['store__name', 'user__name', 'user__email', 'comment']
    readonly_fields = ['created_at', 'updated_at']
    list_select_related = ['store', 'user']

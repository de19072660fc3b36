import django_filters

from .models import Store


class StoreFilter(django_filters.FilterSet):
    """Substring match on name and email"""
    name = django_filters.CharFilter(lookup_expr='icontains')
    email = django_filters.CharFilter(lookup_expr='icontains')

    class Meta:
        model = Store
        fields = ['name', 'email']

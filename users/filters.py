import django_filters
from django.db.models import F
from rest_framework import filters

from .models import User


class UserFilter(django_filters.FilterSet):
    """Substring match on name/email, exact match on role"""
    name = django_filters.CharFilter(lookup_expr='icontains')
    email = django_filters.CharFilter(lookup_expr='icontains')
    role = django_filters.CharFilter(lookup_expr='exact')

    class Meta:
        model = User
        fields = ['name', 'email', 'role']


class SortByFilter(filters.OrderingFilter):
    """
    OrderingFilter driven by ``sortBy`` and ``order`` query parameters.

    - ``sortBy`` outside the view's ``ordering_fields`` falls back to ``ordering``
    - ``order=desc`` sorts descending, anything else ascending
    - NULL values (stores without an email) always sort last
    - ties are broken by id so the order is stable
    """
    ordering_param = 'sortBy'
    order_param = 'order'
    ordering_description = 'Field to sort by: name or email.'

    def get_ordering(self, request, queryset, view):
        default = self.get_default_ordering(view) or ('id',)
        sort_by = request.query_params.get(self.ordering_param)
        if sort_by not in getattr(view, 'ordering_fields', ()):
            sort_by = default[0]

        if request.query_params.get(self.order_param, 'asc').lower() == 'desc':
            return [F(sort_by).desc(nulls_last=True), '-id']
        return [F(sort_by).asc(nulls_last=True), 'id']

    def get_schema_operation_parameters(self, view):
        return super().get_schema_operation_parameters(view) + [{
            'name': self.order_param,
            'required': False,
            'in': 'query',
            'description': 'asc (default) or desc.',
            'schema': {'type': 'string', 'enum': ['asc', 'desc']},
        }]

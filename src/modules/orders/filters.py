import django_filters

from modules.orders.constants import ACTIVE_STATES, EscalationBucket
from modules.orders.models import Order


class OrderFilter(django_filters.FilterSet):
    status = django_filters.CharFilter(field_name="status", lookup_expr="iexact")
    escalation = django_filters.ChoiceFilter(
        field_name="escalation_bucket", choices=EscalationBucket.choices
    )
    start_date = django_filters.DateFilter(field_name="order_date", lookup_expr="date__gte")
    end_date = django_filters.DateFilter(field_name="order_date", lookup_expr="date__lte")
    min_gp = django_filters.NumberFilter(field_name="current_gp", lookup_expr="gte")
    max_gp = django_filters.NumberFilter(field_name="current_gp", lookup_expr="lte")
    yard_name = django_filters.CharFilter(method="filter_yard_name")
    sales_agent = django_filters.CharFilter(field_name="sales_agent", lookup_expr="iexact")
    active = django_filters.BooleanFilter(method="filter_active")

    class Meta:
        model = Order
        fields = [
            "status",
            "escalation",
            "start_date",
            "end_date",
            "min_gp",
            "max_gp",
            "yard_name",
            "sales_agent",
            "active",
        ]

    def filter_yard_name(self, queryset, name, value):
        return queryset.filter(yard_entries__yard_name__icontains=value).distinct()

    def filter_active(self, queryset, name, value):
        if value:
            return queryset.filter(status__in=ACTIVE_STATES)
        return queryset.exclude(status__in=ACTIVE_STATES)

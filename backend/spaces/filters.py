import django_filters
from django.db import connection

from .models import Space
from .validators import AMENITIES


class SpaceFilter(django_filters.FilterSet):
    city = django_filters.CharFilter(field_name="city", lookup_expr="iexact")
    postcode = django_filters.CharFilter(field_name="postcode", lookup_expr="istartswith")
    space_type = django_filters.ChoiceFilter(choices=Space.SPACE_TYPES)
    price_min = django_filters.NumberFilter(field_name="price_per_hour", lookup_expr="gte")
    price_max = django_filters.NumberFilter(field_name="price_per_hour", lookup_expr="lte")
    amenity = django_filters.MultipleChoiceFilter(choices=AMENITIES, method="filter_amenity")

    class Meta:
        model = Space
        fields = ["city", "postcode", "space_type", "price_min", "price_max", "amenity"]

    def filter_amenity(self, queryset, name, value):
        # SQLite has no JSON containment lookup.
        if connection.vendor == "sqlite":
            wanted = set(value)
            ids = [
                space.pk
                for space in queryset.only("pk", "amenities")
                if wanted.issubset(space.amenities or [])
            ]
            return queryset.filter(pk__in=ids)
        for amenity in value:
            queryset = queryset.filter(amenities__contains=[amenity])
        return queryset

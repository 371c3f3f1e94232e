import html

import bleach
from rest_framework import serializers


def clean_text(v):
    """Strip markup from free text typed into forms.

    bleach escapes the text it keeps; the stored value is plain text, so
    entities are turned back into characters (``Ali & Fils``, ``TA > 14``).
    Renderers escape on output.
    """
    if v is None:
        return v
    return html.unescape(bleach.clean(str(v).strip(), tags=set(), strip=True)).strip()


class CleanCharField(serializers.CharField):
    def to_internal_value(self, data):
        value = clean_text(super().to_internal_value(data))
        if value == '' and not self.allow_blank:
            self.fail('blank')
        return value


class DateRangeQuerySerializer(serializers.Serializer):
    search = serializers.CharField(max_length=100, required=False, allow_blank=True)
    dateFrom = serializers.DateField(required=False)
    dateTo = serializers.DateField(required=False)
    page = serializers.IntegerField(min_value=1, required=False)
    pageSize = serializers.IntegerField(min_value=1, max_value=500, required=False)

    def validate(self, attrs):
        start, end = attrs.get('dateFrom'), attrs.get('dateTo')
        if start and end and start > end:
            raise serializers.ValidationError({'dateTo': 'La date de fin doit suivre la date de début'})
        return attrs

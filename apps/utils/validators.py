import re
from rest_framework import serializers


def validate_phone(value):
    pattern = r"^\+?\d{10,15}$"
    cleaned = re.sub(r"[\s\-()]", "", str(value))
    if not re.match(pattern, cleaned):
        raise serializers.ValidationError("Invalid phone number format.")
    return cleaned

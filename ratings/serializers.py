from rest_framework import serializers
from .models import Rating

RATING_ERRORS = {
    'invalid': 'Rating must be an integer between 1 and 5.',
    'min_value': 'Rating must be an integer between 1 and 5.',
    'max_value': 'Rating must be an integer between 1 and 5.',
    'required': 'Rating must be an integer between 1 and 5.',
}


class RatingSerializer(serializers.ModelSerializer):
    """A user's own rating of a store"""

    class Meta:
        model = Rating
        fields = ['rating', 'comment']


class RatingSubmitSerializer(serializers.Serializer):
    storeId = serializers.IntegerField(
        min_value=1,
        error_messages={
            'invalid': 'Store ID must be a positive integer.',
            'min_value': 'Store ID must be a positive integer.',
            'required': 'Store ID must be a positive integer.',
        }
    )
    rating = serializers.IntegerField(min_value=1, max_value=5, error_messages=RATING_ERRORS)
    comment = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class RatingUpdateSerializer(serializers.Serializer):
    rating = serializers.IntegerField(min_value=1, max_value=5, error_messages=RATING_ERRORS)
    comment = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class StoreRatingSerializer(serializers.ModelSerializer):
    """Rating with its author, as shown to the store owner"""
    userId = serializers.IntegerField(source='user.id', read_only=True)
    name = serializers.CharField(source='user.name', read_only=True)
    email = serializers.EmailField(source='user.email', read_only=True)

    class Meta:
        model = Rating
        fields = ['userId', 'name', 'email', 'rating', 'comment']

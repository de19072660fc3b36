from django.conf import settings
from django.db import models


class Store(models.Model):
    """
    A rateable store.

    ``owner`` links the store to the Owner-role user running it. It is resolved
    from ``email`` when the store is saved through the API (see stores.utils).
    """
    name = models.CharField(max_length=100)
    email = models.EmailField(unique=True, blank=True, null=True)
    address = models.CharField(max_length=400)
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name='owned_stores',
        null=True,
        blank=True,
        help_text='Owner-role user who runs this store'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'stores'
        ordering = ['name']
        indexes = [
            models.Index(fields=['name'], name='stores_name_idx'),
        ]

    def __str__(self):
        return self.name

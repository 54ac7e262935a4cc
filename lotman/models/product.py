"""
Product model — catalog entry identified by SKU.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


def _default_min_stock_alert():
    from lotman.conf import lotman_settings
    return lotman_settings.DEFAULT_MIN_STOCK_ALERT


class ProductQuerySet(models.QuerySet):

    def active(self):
        return self.filter(is_active=True)


class Product(models.Model):
    """
    Product sold from stock.

    Rules:
    - Never deleted; retire it with is_active=False
    - SKU is frozen once any movement references one of its batches
    """

    sku = models.CharField(
        max_length=64,
        unique=True,
        verbose_name=_('SKU'),
    )
    name = models.CharField(max_length=200, verbose_name=_('Name'))
    description = models.TextField(blank=True, default='', verbose_name=_('Description'))
    min_stock_alert = models.PositiveIntegerField(
        default=_default_min_stock_alert,
        verbose_name=_('Minimum stock alert'),
        help_text=_('Alert fires when available stock drops below this value'),
    )
    is_active = models.BooleanField(default=True, verbose_name=_('Active'))

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ProductQuerySet.as_manager()

    class Meta:
        verbose_name = _('Product')
        verbose_name_plural = _('Products')
        ordering = ['sku']

    def save(self, *args, **kwargs):
        if self.pk:
            stored_sku = (
                Product.objects.filter(pk=self.pk)
                .values_list('sku', flat=True)
                .first()
            )
            if stored_sku is not None and stored_sku != self.sku and self._has_movements():
                raise ValueError(
                    f"SKU {stored_sku!r} is referenced by ledger movements and cannot change."
                )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Products are never deleted. Set is_active=False instead.")

    def _has_movements(self) -> bool:
        from lotman.models.movement import Movement
        return Movement.objects.filter(batch__product_id=self.pk).exists()

    def __str__(self) -> str:
        return self.sku

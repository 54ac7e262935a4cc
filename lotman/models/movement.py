"""
Movement model — Immutable ledger of quantity changes.
"""

from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from lotman.models.enums import MovementKind


class Movement(models.Model):
    """
    Immutable record of a quantity change against a batch.

    Rules:
    - NEVER update() or delete()
    - kind=in carries a positive quantity and no order
    - kind=sale carries a negative quantity
    - Undoing a sale means changing the referenced Order's status,
      never touching the movement
    """

    batch = models.ForeignKey(
        'lotman.Batch',
        on_delete=models.PROTECT,
        related_name='movements',
        verbose_name=_('Batch'),
    )
    kind = models.CharField(
        max_length=10,
        choices=MovementKind.choices,
        db_index=True,
        verbose_name=_('Kind'),
    )
    quantity = models.IntegerField(
        verbose_name=_('Quantity changed'),
        help_text=_('Positive = stock in, Negative = sale'),
    )

    order = models.ForeignKey(
        'lotman.Order',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='movements',
        verbose_name=_('Order'),
    )
    line = models.ForeignKey(
        'lotman.OrderLine',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='movements',
        verbose_name=_('Order line'),
    )

    reason = models.CharField(max_length=255, blank=True, default='', verbose_name=_('Reason'))
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        verbose_name=_('Performed by'),
    )
    created_at = models.DateTimeField(default=timezone.now, db_index=True, verbose_name=_('Created at'))

    class Meta:
        verbose_name = _('Movement')
        verbose_name_plural = _('Movements')
        ordering = ['created_at', 'pk']
        indexes = [
            models.Index(fields=['batch', 'kind'], name='lotman_move_batch_i_8e4a71_idx'),
            models.Index(fields=['order'], name='lotman_move_order_i_5d02c9_idx'),
        ]

    def save(self, *args, **kwargs):
        if self.pk:
            raise ValueError(
                "Movements are immutable. "
                "Change the order status to release a sale."
            )

        if self.kind == MovementKind.IN:
            if self.quantity <= 0:
                raise ValueError("Stock-in movements must have a positive quantity")
            if self.order_id is not None:
                raise ValueError("Stock-in movements cannot reference an order")
        elif self.kind == MovementKind.SALE:
            if self.quantity >= 0:
                raise ValueError("Sale movements must have a negative quantity")
        else:
            raise ValueError(f"Unknown movement kind: {self.kind!r}")

        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Movements are immutable and cannot be deleted.")

    def __str__(self) -> str:
        signal = '+' if self.quantity > 0 else ''
        return f"{signal}{self.quantity} | {self.kind} | batch {self.batch_id}"

"""
Initial migration for Lotman models.
"""

from decimal import Decimal
import django.db.models.deletion
import django.utils.timezone
import lotman.models.product
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    """Create Lotman models: Product, Batch, Order, OrderLine, Movement."""

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Product',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('sku', models.CharField(max_length=64, unique=True, verbose_name='SKU')),
                ('name', models.CharField(max_length=200, verbose_name='Name')),
                ('description', models.TextField(blank=True, default='', verbose_name='Description')),
                ('min_stock_alert', models.PositiveIntegerField(default=lotman.models.product._default_min_stock_alert, help_text='Alert fires when available stock drops below this value', verbose_name='Minimum stock alert')),
                ('is_active', models.BooleanField(default=True, verbose_name='Active')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Product',
                'verbose_name_plural': 'Products',
                'ordering': ['sku'],
            },
        ),
        migrations.CreateModel(
            name='Batch',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('lot_number', models.CharField(blank=True, default='', help_text='Human label. Not guaranteed to be unique.', max_length=50, verbose_name='Lot number')),
                ('unit_cost', models.DecimalField(decimal_places=2, default=Decimal('0'), help_text='Zero means the cost has not been entered yet', max_digits=12, verbose_name='Unit cost')),
                ('received_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='Received at')),
                ('quantity_remaining', models.IntegerField(default=0, editable=False, verbose_name='Remaining (cached)')),
                ('version', models.PositiveIntegerField(default=0, editable=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='batches', to='lotman.product', verbose_name='Product')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Received by')),
            ],
            options={
                'verbose_name': 'Batch',
                'verbose_name_plural': 'Batches',
                'ordering': ['received_at', 'pk'],
                'indexes': [models.Index(fields=['product', 'received_at'], name='lotman_batc_product_6b1f0e_idx')],
            },
        ),
        migrations.CreateModel(
            name='Order',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('status', models.CharField(choices=[('processing', 'Processing'), ('sent', 'Sent'), ('delivered', 'Delivered'), ('returned', 'Returned'), ('cancelled', 'Cancelled')], db_index=True, default='processing', max_length=20, verbose_name='Status')),
                ('cod_amount', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=12, verbose_name='Cash on delivery')),
                ('customer_name', models.CharField(blank=True, default='', max_length=200, verbose_name='Customer')),
                ('customer_address', models.TextField(blank=True, default='', verbose_name='Address')),
                ('phone1', models.CharField(blank=True, default='', max_length=20, verbose_name='Phone')),
                ('phone2', models.CharField(blank=True, default='', max_length=20, verbose_name='Phone (alternate)')),
                ('destination_branch', models.CharField(blank=True, default='', max_length=100, verbose_name='Destination branch')),
                ('order_date', models.DateField(default=django.utils.timezone.localdate, verbose_name='Order date')),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('status_changed_at', models.DateTimeField(blank=True, null=True, verbose_name='Status changed at')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Recorded by')),
            ],
            options={
                'verbose_name': 'Order',
                'verbose_name_plural': 'Orders',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['status', 'order_date'], name='lotman_orde_status_3c9d2a_idx')],
            },
        ),
        migrations.CreateModel(
            name='OrderLine',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quantity', models.PositiveIntegerField(verbose_name='Quantity')),
                ('order', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='lines', to='lotman.order', verbose_name='Order')),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='order_lines', to='lotman.product', verbose_name='Product')),
            ],
            options={
                'verbose_name': 'Order line',
                'verbose_name_plural': 'Order lines',
                'ordering': ['pk'],
            },
        ),
        migrations.CreateModel(
            name='Movement',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('kind', models.CharField(choices=[('in', 'Stock in'), ('sale', 'Sale')], db_index=True, max_length=10, verbose_name='Kind')),
                ('quantity', models.IntegerField(help_text='Positive = stock in, Negative = sale', verbose_name='Quantity changed')),
                ('reason', models.CharField(blank=True, default='', max_length=255, verbose_name='Reason')),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='Created at')),
                ('batch', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='movements', to='lotman.batch', verbose_name='Batch')),
                ('line', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='movements', to='lotman.orderline', verbose_name='Order line')),
                ('order', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='movements', to='lotman.order', verbose_name='Order')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Performed by')),
            ],
            options={
                'verbose_name': 'Movement',
                'verbose_name_plural': 'Movements',
                'ordering': ['created_at', 'pk'],
                'indexes': [
                    models.Index(fields=['batch', 'kind'], name='lotman_move_batch_i_8e4a71_idx'),
                    models.Index(fields=['order'], name='lotman_move_order_i_5d02c9_idx'),
                ],
            },
        ),
    ]

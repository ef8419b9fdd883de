# Initial schema for commission settings, transactions, store ledger and payouts

import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


RATE_VALIDATORS = [
    django.core.validators.MinValueValidator(Decimal('0.00')),
    django.core.validators.MaxValueValidator(Decimal('100.00')),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='CommissionSettings',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('global_rate', models.DecimalField(decimal_places=2, default=Decimal('10.00'), help_text='Default commission percentage applied to every sale', max_digits=5, validators=RATE_VALIDATORS)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Commission settings',
                'verbose_name_plural': 'Commission settings',
                'db_table': 'commission_settings',
            },
        ),
        migrations.CreateModel(
            name='CategoryCommissionRate',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('category_id', models.CharField(db_index=True, max_length=100)),
                ('rate', models.DecimalField(decimal_places=2, max_digits=5, validators=RATE_VALIDATORS)),
                ('settings', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='category_rates', to='commission.commissionsettings')),
            ],
            options={
                'db_table': 'commission_category_rates',
                'constraints': [models.UniqueConstraint(fields=('settings', 'category_id'), name='unique_category_rate_per_settings')],
            },
        ),
        migrations.CreateModel(
            name='StoreCommissionRate',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('store_id', models.CharField(db_index=True, max_length=100)),
                ('rate', models.DecimalField(decimal_places=2, max_digits=5, validators=RATE_VALIDATORS)),
                ('settings', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='store_rates', to='commission.commissionsettings')),
            ],
            options={
                'db_table': 'commission_store_rates',
                'constraints': [models.UniqueConstraint(fields=('settings', 'store_id'), name='unique_store_rate_per_settings')],
            },
        ),
        migrations.CreateModel(
            name='VolumeDiscountTier',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('threshold_amount', models.DecimalField(decimal_places=2, max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('discount_rate', models.DecimalField(decimal_places=2, max_digits=5, validators=RATE_VALIDATORS)),
                ('settings', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='volume_discounts', to='commission.commissionsettings')),
            ],
            options={
                'db_table': 'commission_volume_discounts',
                'ordering': ['threshold_amount'],
            },
        ),
        migrations.CreateModel(
            name='CommissionTransaction',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('store_id', models.CharField(db_index=True, max_length=100)),
                ('category_id', models.CharField(blank=True, default='', max_length=100)),
                ('order_id', models.CharField(blank=True, db_index=True, default='', max_length=100)),
                ('payment_intent_id', models.CharField(blank=True, default='', max_length=255)),
                ('gross_amount', models.DecimalField(decimal_places=2, max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('commission_rate', models.DecimalField(decimal_places=2, help_text='Effective commission percentage after discounts', max_digits=5)),
                ('platform_fee', models.DecimalField(decimal_places=2, max_digits=12)),
                ('net_amount', models.DecimalField(decimal_places=2, help_text='Amount owed to the store', max_digits=12)),
                ('currency', models.CharField(default='USD', max_length=3)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('completed', 'Completed')], db_index=True, default='pending', max_length=20)),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('settled_at', models.DateTimeField(blank=True, help_text='When the net amount moved from pending to available', null=True)),
            ],
            options={
                'db_table': 'commission_transactions',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['store_id', 'status', 'created_at'], name='comm_txn_store_status_idx'),
                    models.Index(fields=['status', 'settled_at', 'created_at'], name='comm_txn_settlement_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='StoreEarnings',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('store_id', models.CharField(max_length=100, unique=True)),
                ('total_sales', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('platform_fee_accrued', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('net_earnings', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('lifetime_earnings', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('current_month_sales', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('pending_balance', models.DecimalField(decimal_places=2, default=Decimal('0.00'), help_text='Net earnings still inside the holding period', max_digits=14)),
                ('available_balance', models.DecimalField(decimal_places=2, default=Decimal('0.00'), help_text='Matured earnings that can be paid out', max_digits=14)),
                ('payout_schedule', models.CharField(choices=[('manual', 'Manual'), ('automatic', 'Automatic')], default='manual', max_length=20)),
                ('last_payout_date', models.DateTimeField(blank=True, null=True)),
                ('next_payout_date', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name_plural': 'Store earnings',
                'db_table': 'commission_store_earnings',
                'indexes': [models.Index(fields=['payout_schedule', 'next_payout_date'], name='comm_earn_schedule_idx')],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('pending_balance__gte', 0)), name='store_earnings_pending_non_negative'),
                    models.CheckConstraint(condition=models.Q(('available_balance__gte', 0)), name='store_earnings_available_non_negative'),
                ],
            },
        ),
        migrations.CreateModel(
            name='StorePayoutAccount',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('store_id', models.CharField(max_length=100, unique=True)),
                ('store_name', models.CharField(blank=True, max_length=255)),
                ('email', models.EmailField(max_length=254)),
                ('stripe_account_id', models.CharField(db_index=True, help_text='Connected account ID', max_length=255)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'commission_store_payout_accounts',
            },
        ),
        migrations.CreateModel(
            name='PayoutRequest',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('store_id', models.CharField(db_index=True, max_length=100)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0.01'))])),
                ('currency', models.CharField(default='USD', max_length=3)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('processing', 'Processing'), ('completed', 'Completed'), ('failed', 'Failed')], db_index=True, default='pending', max_length=20)),
                ('payout_method', models.CharField(blank=True, choices=[('stripe_connect', 'Stripe Connect'), ('bank_transfer', 'Bank Transfer')], max_length=20)),
                ('is_automatic', models.BooleanField(default=False)),
                ('bank_details', models.JSONField(blank=True, help_text='accountHolderName, accountNumber, routingNumber, bankName', null=True)),
                ('transfer_id', models.CharField(blank=True, db_index=True, max_length=255)),
                ('failure_reason', models.TextField(blank=True)),
                ('archived', models.BooleanField(default=False)),
                ('archived_at', models.DateTimeField(blank=True, null=True)),
                ('requested_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('processed_at', models.DateTimeField(blank=True, null=True)),
            ],
            options={
                'db_table': 'commission_payout_requests',
                'ordering': ['-requested_at'],
                'indexes': [
                    models.Index(fields=['store_id', '-requested_at'], name='comm_payout_store_req_idx'),
                    models.Index(fields=['status', 'processed_at'], name='comm_payout_status_proc_idx'),
                ],
            },
        ),
    ]

import billing.models
import django.core.validators
import django.db.models.deletion
import uuid
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('organizations', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='OrgSubscription',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('plan_id', models.CharField(choices=[('starter', 'Starter'), ('growth', 'Growth'), ('enterprise', 'Enterprise')], default='starter', help_text='Plan determining entitlements', max_length=20)),
                ('status', models.CharField(choices=[('trialing', 'Trialing'), ('active', 'Active'), ('past_due', 'Past Due'), ('paused', 'Paused'), ('canceled', 'Canceled')], default='trialing', help_text='Subscription status', max_length=20)),
                ('billing_interval', models.CharField(choices=[('monthly', 'Monthly'), ('yearly', 'Yearly')], default='monthly', max_length=10)),
                ('seat_count', models.PositiveIntegerField(default=3, help_text="Purchased seats; capped by the plan's member limit", validators=[django.core.validators.MinValueValidator(1)])),
                ('trial_ends_at', models.DateTimeField(blank=True, help_text='End of the trial period', null=True)),
                ('current_period_start', models.DateTimeField(help_text='Start of the current billing cycle')),
                ('current_period_end', models.DateTimeField(help_text='End of the current billing cycle')),
                ('cancel_at_period_end', models.BooleanField(default=False)),
                ('canceled_at', models.DateTimeField(blank=True, null=True)),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('org', models.ForeignKey(help_text='Subscribed organization', on_delete=django.db.models.deletion.CASCADE, related_name='subscriptions', to='organizations.organization')),
            ],
            options={
                'verbose_name': 'Organization subscription',
                'verbose_name_plural': 'Organization subscriptions',
                'db_table': 'billing_org_subscription',
                'ordering': ['-updated_at'],
                'indexes': [models.Index(fields=['org', 'status'], name='billing_sub_org_status_idx')],
            },
        ),
        migrations.CreateModel(
            name='OrgUsageCounter',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('metric', models.CharField(max_length=50)),
                ('value', models.BigIntegerField(default=0)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('org', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='usage_counters', to='organizations.organization')),
            ],
            options={
                'verbose_name': 'Usage counter',
                'verbose_name_plural': 'Usage counters',
                'db_table': 'billing_org_usage_counter',
                'unique_together': {('org', 'metric')},
            },
        ),
        migrations.CreateModel(
            name='OrgInvoice',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('status', models.CharField(choices=[('draft', 'Draft'), ('open', 'Open'), ('paid', 'Paid'), ('void', 'Void'), ('uncollectible', 'Uncollectible')], default='draft', max_length=20)),
                ('amount_cents', models.PositiveIntegerField(default=0)),
                ('currency', models.CharField(default=billing.models._default_currency, max_length=3)),
                ('due_at', models.DateTimeField(blank=True, null=True)),
                ('paid_at', models.DateTimeField(blank=True, null=True)),
                ('period_start', models.DateTimeField()),
                ('period_end', models.DateTimeField()),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('org', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='invoices', to='organizations.organization')),
                ('subscription', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='invoices', to='billing.orgsubscription')),
            ],
            options={
                'verbose_name': 'Invoice',
                'verbose_name_plural': 'Invoices',
                'db_table': 'billing_org_invoice',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['org', 'status'], name='billing_invoice_org_status_idx')],
            },
        ),
    ]

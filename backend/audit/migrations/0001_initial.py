import django.db.models.deletion
import uuid
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('organizations', '0001_initial'),
        ('projects', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='ActivityLog',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('actor_type', models.CharField(choices=[('user', 'User'), ('ai', 'AI assistant'), ('system', 'System')], default='user', max_length=16)),
                ('action', models.CharField(max_length=64)),
                ('target_type', models.CharField(max_length=64)),
                ('target_id', models.CharField(max_length=255)),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('actor', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='activity', to=settings.AUTH_USER_MODEL)),
                ('org', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='activity', to='organizations.organization')),
                ('project', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='activity', to='projects.project')),
            ],
            options={
                'db_table': 'audit_activity_log',
                'ordering': ('-created_at',),
                'indexes': [
                    models.Index(fields=['org', '-created_at'], name='activity_org_created_idx'),
                    models.Index(fields=['project', '-created_at'], name='activity_project_created_idx'),
                    models.Index(fields=['action', 'target_type'], name='activity_action_target_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ApiAccessLog',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('timestamp', models.DateTimeField(auto_now_add=True)),
                ('method', models.CharField(max_length=8)),
                ('path', models.CharField(max_length=255)),
                ('action', models.CharField(blank=True, max_length=128)),
                ('status_code', models.PositiveSmallIntegerField()),
                ('org_id', models.UUIDField(blank=True, null=True)),
                ('payload', models.JSONField(blank=True, null=True)),
                ('response', models.JSONField(blank=True, null=True)),
                ('ip_address', models.GenericIPAddressField(blank=True, null=True)),
                ('user_agent', models.CharField(blank=True, max_length=255)),
                ('request_id', models.CharField(blank=True, max_length=64)),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='api_access_logs', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'audit_api_access_log',
                'ordering': ('-timestamp',),
                'indexes': [
                    models.Index(fields=['user', '-timestamp'], name='api_log_user_ts_idx'),
                    models.Index(fields=['status_code', '-timestamp'], name='api_log_status_ts_idx'),
                ],
            },
        ),
    ]

import django.db.models.deletion
import organizations.models
import uuid
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Organization',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, help_text='Unique identifier for the organization', primary_key=True, serialize=False)),
                ('name', models.CharField(help_text='Display name of the organization', max_length=200)),
                ('slug', models.SlugField(help_text='URL-safe unique handle derived from the name', max_length=64, unique=True)),
                ('created_at', models.DateTimeField(auto_now_add=True, help_text='When the organization was created')),
            ],
            options={
                'verbose_name': 'Organization',
                'verbose_name_plural': 'Organizations',
                'db_table': 'organization',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='OrgMember',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('system_role', models.CharField(choices=[('super_admin', 'Super Admin'), ('member', 'Member')], default='member', help_text='Org-level role of the user', max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True, help_text='When the user joined the organization')),
                ('org', models.ForeignKey(help_text='Organization the user belongs to', on_delete=django.db.models.deletion.CASCADE, related_name='members', to='organizations.organization')),
                ('user', models.ForeignKey(help_text='Member user', on_delete=django.db.models.deletion.CASCADE, related_name='org_memberships', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Organization Member',
                'verbose_name_plural': 'Organization Members',
                'db_table': 'organization_member',
                'ordering': ['created_at', 'id'],
                'indexes': [
                    models.Index(fields=['org', 'system_role'], name='org_member_org_role_idx'),
                    models.Index(fields=['user'], name='org_member_user_idx'),
                ],
                'unique_together': {('org', 'user')},
            },
        ),
        migrations.CreateModel(
            name='MagicLink',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, help_text='Unique identifier for the magic link', primary_key=True, serialize=False)),
                ('token', models.CharField(default=organizations.models.generate_magic_link_token, editable=False, help_text='Secret token embedded in the invitation URL', max_length=128, unique=True)),
                ('email', models.EmailField(help_text='Normalized email address the link was issued for', max_length=254)),
                ('system_role', models.CharField(choices=[('super_admin', 'Super Admin'), ('member', 'Member')], default='member', help_text='Role granted on redemption', max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True, help_text='When the link was issued')),
                ('expires_at', models.DateTimeField(help_text='After this moment the link can no longer be redeemed')),
                ('redeemed_at', models.DateTimeField(blank=True, help_text='When the link was redeemed', null=True)),
                ('invited_by', models.ForeignKey(help_text='Super admin who issued the link', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='issued_magic_links', to=settings.AUTH_USER_MODEL)),
                ('org', models.ForeignKey(help_text='Organization the link grants access to', on_delete=django.db.models.deletion.CASCADE, related_name='magic_links', to='organizations.organization')),
                ('redeemed_by', models.ForeignKey(blank=True, help_text='User who redeemed the link', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='redeemed_magic_links', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Magic Link',
                'verbose_name_plural': 'Magic Links',
                'db_table': 'organization_magic_link',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['org', 'redeemed_at'], name='magic_link_org_redeemed_idx'),
                    models.Index(fields=['expires_at'], name='magic_link_expires_idx'),
                ],
            },
        ),
    ]

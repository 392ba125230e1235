import assets.models
import django.db.models.deletion
import uuid
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('projects', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='ProjectFile',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('filename', models.CharField(help_text='Stored name: <id>.<ext>', max_length=255)),
                ('original_name', models.CharField(max_length=255)),
                ('mime_type', models.CharField(max_length=128)),
                ('size_bytes', models.BigIntegerField()),
                ('file', models.FileField(max_length=512, upload_to=assets.models.project_upload_path)),
                ('attachment_type', models.CharField(choices=[('project', 'Project'), ('document', 'Document'), ('task', 'Task'), ('comment', 'Comment')], default='project', max_length=16)),
                ('attachment_id', models.CharField(blank=True, max_length=64, null=True)),
                ('description', models.TextField(blank=True, null=True)),
                ('is_active', models.BooleanField(default=True)),
                ('deleted_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('project', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='files', to='projects.project')),
                ('uploaded_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='uploaded_files', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'project_file',
                'ordering': ('-created_at',),
                'indexes': [models.Index(fields=['project', 'attachment_type', 'attachment_id'], name='project_file_attachment_idx')],
            },
        ),
    ]

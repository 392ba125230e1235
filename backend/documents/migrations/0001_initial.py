import django.db.models.deletion
import documents.models
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
            name='Document',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, help_text='Unique identifier for the document', primary_key=True, serialize=False)),
                ('title', models.CharField(default='Untitled', help_text='Document title', max_length=500)),
                ('sort_order', models.IntegerField(default=0)),
                ('is_archived', models.BooleanField(default=False)),
                ('tags', models.JSONField(blank=True, default=list)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_documents', to=settings.AUTH_USER_MODEL)),
                ('parent', models.ForeignKey(blank=True, help_text='Parent document in the tree', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='children', to='documents.document')),
                ('project', models.ForeignKey(help_text='Project the document belongs to', on_delete=django.db.models.deletion.CASCADE, related_name='documents', to='projects.project')),
            ],
            options={
                'verbose_name': 'Document',
                'verbose_name_plural': 'Documents',
                'db_table': 'document',
                'ordering': ['sort_order', 'title'],
                'indexes': [
                    models.Index(fields=['project', 'is_archived'], name='document_project_idx'),
                    models.Index(fields=['parent'], name='document_parent_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='DocumentContent',
            fields=[
                ('document', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, primary_key=True, related_name='content', serialize=False, to='documents.document')),
                ('yjs_state', models.TextField(blank=True, null=True)),
                ('last_snapshot', models.JSONField(default=documents.models.empty_snapshot)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Document Content',
                'verbose_name_plural': 'Document Contents',
                'db_table': 'document_content',
            },
        ),
    ]

# Generated migration for the URL-keyed SEO store

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='SeoRecord',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('url', models.CharField(db_index=True, help_text='URL as received', max_length=500)),
                ('url_normalized', models.CharField(help_text='Lookup key, see seo.normalizer.normalize_url', max_length=500, unique=True)),
                ('resolved_entity_id', models.BigIntegerField(blank=True, db_index=True, help_text='Post ID the URL resolved to, when known', null=True)),
                ('title', models.TextField(blank=True, null=True)),
                ('description', models.TextField(blank=True, null=True)),
                ('canonical_url', models.CharField(blank=True, max_length=500, null=True)),
                ('schema', models.TextField(blank=True, help_text='JSON-LD markup', null=True)),
                ('original_title', models.TextField(blank=True, null=True)),
                ('original_description', models.TextField(blank=True, null=True)),
                ('original_canonical', models.CharField(blank=True, max_length=500, null=True)),
                ('original_schema', models.TextField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True, db_index=True)),
            ],
            options={
                'db_table': 'seo_records',
                'ordering': ['-updated_at'],
            },
        ),
    ]

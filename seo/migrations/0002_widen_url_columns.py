# Generated manually

from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('seo', '0001_initial'),
    ]

    operations = [
        migrations.AlterField(
            model_name='seorecord',
            name='url',
            field=models.CharField(db_index=True, help_text='URL as received', max_length=2000),
        ),
        migrations.AlterField(
            model_name='seorecord',
            name='url_normalized',
            field=models.CharField(help_text='Lookup key, see seo.normalizer.normalize_url', max_length=2000, unique=True),
        ),
    ]

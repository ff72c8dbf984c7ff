import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Menu',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('name', models.CharField(max_length=255)),
                ('slug', models.SlugField(max_length=255, unique=True)),
            ],
            options={
                'db_table': 'menus_menu',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='MenuItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('locale', models.CharField(max_length=16)),
                ('path', models.CharField(blank=True, db_index=True, max_length=1024)),
                ('order', models.PositiveIntegerField(default=1)),
                ('type', models.CharField(max_length=100)),
                ('name', models.CharField(blank=True, max_length=255)),
                ('fields', models.JSONField(blank=True, default=dict)),
                ('enabled', models.BooleanField(default=True)),
                ('menu', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='menus.menu')),
                ('parent', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='children', to='menus.menuitem')),
            ],
            options={
                'db_table': 'menus_menu_item',
                'ordering': ['order', 'id'],
                'indexes': [models.Index(fields=['menu', 'locale', 'parent', 'order'], name='menu_item_scope_idx')],
            },
        ),
    ]

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


PRIORITY_CHOICES = [('low', 'Low'), ('medium', 'Medium'), ('high', 'High'), ('urgent', 'Urgent')]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('orders', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Notification',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(max_length=200)),
                ('message', models.TextField()),
                ('data', models.JSONField(blank=True, default=dict)),
                ('is_read', models.BooleanField(default=False)),
                ('read_at', models.DateTimeField(blank=True, null=True)),
                ('action_required', models.BooleanField(default=False)),
                ('priority', models.CharField(choices=PRIORITY_CHOICES, default='medium', max_length=10)),
                ('expires_at', models.DateTimeField(blank=True, db_index=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('notification_type', models.CharField(choices=[('order_update', 'Order Update'), ('booking_status', 'Booking Status'), ('price_change', 'Price Change'), ('general', 'General'), ('rider_edit', 'Rider Edit')], default='general', max_length=30)),
                ('action_type', models.CharField(choices=[('approve_changes', 'Approve Changes'), ('view_order', 'View Order'), ('contact_support', 'Contact Support'), ('none', 'None')], default='none', max_length=30)),
                ('related_order', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='orders.order')),
                ('related_rider', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='user_notifications', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'notifications_notification',
                'ordering': ['-created_at'],
                'abstract': False,
                'indexes': [
                    models.Index(fields=['user', 'is_read'], name='notificatio_user_id_3b1e5f_idx'),
                    models.Index(fields=['user', '-created_at'], name='notificatio_user_id_9a4c2d_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='RiderNotification',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(max_length=200)),
                ('message', models.TextField()),
                ('data', models.JSONField(blank=True, default=dict)),
                ('is_read', models.BooleanField(default=False)),
                ('read_at', models.DateTimeField(blank=True, null=True)),
                ('action_required', models.BooleanField(default=False)),
                ('priority', models.CharField(choices=PRIORITY_CHOICES, default='medium', max_length=10)),
                ('expires_at', models.DateTimeField(blank=True, db_index=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('notification_type', models.CharField(choices=[('order_assigned', 'Order Assigned'), ('order_updated', 'Order Updated'), ('order_cancelled', 'Order Cancelled'), ('general', 'General'), ('location_request', 'Location Request'), ('customer_verification_response', 'Customer Verification Response')], default='general', max_length=40)),
                ('action_type', models.CharField(choices=[('accept_order', 'Accept Order'), ('start_pickup', 'Start Pickup'), ('update_location', 'Update Location'), ('view_order', 'View Order'), ('none', 'None')], default='none', max_length=30)),
                ('related_order', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='orders.order')),
                ('rider', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='rider_notifications', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'notifications_ridernotification',
                'ordering': ['-created_at'],
                'abstract': False,
                'indexes': [
                    models.Index(fields=['rider', 'is_read'], name='notificatio_rider_i_5d2f7a_idx'),
                    models.Index(fields=['rider', '-created_at'], name='notificatio_rider_i_e81b3c_idx'),
                ],
            },
        ),
    ]

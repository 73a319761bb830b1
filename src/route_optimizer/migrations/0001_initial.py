from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="OptimizedRoute",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
                    ),
                ),
                ("name", models.CharField(blank=True, default="", max_length=200)),
                ("description", models.TextField(blank=True, default="")),
                ("algorithm_used", models.CharField(max_length=50)),
                ("original_distance_km", models.FloatField()),
                ("optimized_distance_km", models.FloatField()),
                ("savings_km", models.FloatField()),
                ("savings_percentage", models.FloatField()),
                ("iterations", models.PositiveIntegerField(default=0)),
                ("converged", models.BooleanField(default=True)),
                ("waypoint_count", models.PositiveIntegerField()),
                ("original_order", models.JSONField(default=list)),
                ("optimized_order", models.JSONField(default=list)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ("-created_at", "-id"),
                "indexes": [models.Index(fields=["created_at"], name="optimized_route_created_idx")],
            },
        ),
    ]

from django.urls import path

from django_app import views

urlpatterns = [
    path("metrics", views.metrics_view, name="metrics"),
    path("api/storage", views.storage_endpoint, name="storage"),
]

"""
URL configuration for summit_project project.
"""
from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('admin/', admin.site.urls),
    path('', include('registrations.urls')),
    path('api/', include('registrations.api_urls')),
]

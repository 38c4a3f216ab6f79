"""
URL configuration for the contact form service.

    POST /api/contact          contact form submission
    GET  /api/contact/config   public reCAPTCHA widget configuration
"""
from django.urls import path, include

urlpatterns = [
    path('api/', include('contact.urls')),
]

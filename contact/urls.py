"""
Contact Form URL Configuration
"""
from django.urls import path
from .views import ContactSubmitView, ContactFormConfigView

app_name = 'contact'

# Public URLs (no auth required)
urlpatterns = [
    path('contact', ContactSubmitView.as_view(), name='submit'),
    path('contact/config', ContactFormConfigView.as_view(), name='config'),
]

"""
PetPOS — Root URL Configuration

Only the Django admin is mounted; the inventory core is called by the
request layer through its services.

@file config/urls.py
"""

from django.contrib import admin
from django.urls import path

admin.site.site_header = 'PetPOS Administration'
admin.site.site_title = 'PetPOS'
admin.site.index_title = 'Multi-branch inventory'

urlpatterns = [
    path('admin/', admin.site.urls),
]

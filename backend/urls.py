"""
URL configuration for backend project.

The `urlpatterns` list routes URLs to views. For more information please see:
    https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""
from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api-auth/', include('rest_framework.urls')),
    path('discounts/', include('discounts.urls')),
    path('coupons/', include('coupons.urls')),
    path('payment/', include('payment.urls')),
    path('order/', include('orders.urls')),
    path('refunds/', include('refunds.urls')),
]

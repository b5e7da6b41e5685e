from django.urls import path
from . import views

urlpatterns = [
    path('', views.discounts, name='discounts'),
    path('categories/', views.getDiscountedCategories, name='getDiscountedCategories'),
    path('product/<int:product_id>/', views.getProductDiscount, name='getProductDiscount'),
    path('<int:pk>/', views.discountDetail, name='discountDetail'),
    path('<int:pk>/toggle/', views.toggleDiscount, name='toggleDiscount'),
]

from django.urls import path
from . import views

urlpatterns = [
    path('', views.coupons, name='coupons'),
    path('<int:id>/', views.couponDetail, name='couponDetail'),
    path('validate/', views.validateCoupon, name='validateCoupon'),
    path('confirm-usage/', views.confirmCouponUsage, name='confirmCouponUsage'),
    path('active/', views.getActiveCoupons, name='getActiveCoupons'),
    path('category/<str:category>/', views.getCategoryCoupons, name='getCategoryCoupons'),
]

import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from api.permissions import IsStoreAdmin
from orders.models import Order
from .models import Coupon, normalize_code
from .serializers import (
    ConfirmUsageRequestSerializer,
    CouponSerializer,
    PublicCouponSerializer,
    ValidateCouponRequestSerializer,
)
from .service import confirm_usage, coupons_for_category, active_coupons_queryset, validate_coupon

logger = logging.getLogger(__name__)


# List coupons or create one (admin only)
@api_view(['GET', 'POST'])
@permission_classes([IsStoreAdmin])
def coupons(request):
    if request.method == 'POST':
        serializer = CouponSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        coupon = serializer.save()
        logger.info("Coupon %s created", coupon.code)
        return Response({"message": "Coupon created successfully", "data": serializer.data},
                        status=status.HTTP_201_CREATED)

    serializer = CouponSerializer(Coupon.objects.all(), many=True)
    return Response({"count": len(serializer.data), "data": serializer.data}, status=status.HTTP_200_OK)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsStoreAdmin])
def couponDetail(request, id):
    try:
        coupon = Coupon.objects.get(id=id)
    except Coupon.DoesNotExist:
        return Response({'message': 'Coupon not found'}, status=status.HTTP_404_NOT_FOUND)

    if request.method == 'GET':
        return Response(CouponSerializer(coupon).data, status=status.HTTP_200_OK)

    if request.method == 'DELETE':
        coupon.delete()
        logger.info("Coupon %s deleted", coupon.code)
        return Response({'message': 'Coupon deleted successfully'}, status=status.HTTP_200_OK)

    serializer = CouponSerializer(coupon, data=request.data, partial=True)
    serializer.is_valid(raise_exception=True)
    serializer.save()
    return Response({"message": "Coupon updated successfully", "data": serializer.data},
                    status=status.HTTP_200_OK)


# Preview a coupon against a cart; never consumes a usage slot
@api_view(['POST'])
@permission_classes([AllowAny])
def validateCoupon(request):
    serializer = ValidateCouponRequestSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    quote = validate_coupon(data['code'], data['cartItems'], data['cartTotal'])
    return Response(quote.as_dict(), status=status.HTTP_200_OK)


@api_view(['POST'])
@permission_classes([AllowAny])
def confirmCouponUsage(request):
    serializer = ConfirmUsageRequestSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    order = None
    if data['orderId'] is not None:
        order = Order.objects.filter(pk=data['orderId']).first()
        if order is None:
            raise NotFound('Order not found')
        if order.coupon_code != normalize_code(data['code']):
            raise ValidationError('Coupon was not applied to this order')

    used_count = confirm_usage(data['code'], order=order)
    return Response({"success": True, "message": "Coupon usage confirmed", "usedCount": used_count},
                    status=status.HTTP_200_OK)


@api_view(['GET'])
@permission_classes([AllowAny])
def getActiveCoupons(request):
    coupons_list = active_coupons_queryset().order_by('-discount_value')
    serializer = PublicCouponSerializer(coupons_list, many=True)
    return Response({"coupons": serializer.data}, status=status.HTTP_200_OK)


@api_view(['GET'])
@permission_classes([AllowAny])
def getCategoryCoupons(request, category):
    serializer = PublicCouponSerializer(coupons_for_category(category), many=True)
    return Response({"category": category, "coupons": serializer.data}, status=status.HTTP_200_OK)

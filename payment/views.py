import logging

from django.conf import settings
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from api.permissions import IsStoreAdminOrReadOnly
from orders.serializers import CreateOrderRequestSerializer
from orders.services import create_order, mark_payment_failed, verify_payment
from .models import StoreSettings
from .serializers import (
    PaymentFailedRequestSerializer,
    StoreSettingsSerializer,
    VerifyPaymentRequestSerializer,
)

logger = logging.getLogger(__name__)


def _order_summary(order):
    return {
        "orderId": order.pk,
        "orderNumber": order.order_number,
        "subtotal": order.subtotal,
        "productDiscount": order.product_discount,
        "couponCode": order.coupon_code,
        "couponDiscount": order.coupon_discount,
        "codCharge": order.cod_charge,
        "finalAmount": order.final_amount,
        "paymentStatus": order.payment_status,
        "orderStatus": order.order_status,
    }


# Online checkout: the frontend opens the gateway with the returned order reference
@api_view(['POST'])
@permission_classes([AllowAny])
def createOrder(request):
    serializer = CreateOrderRequestSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    order = create_order(serializer.validated_data, 'razorpay')
    return Response({
        "success": True,
        "message": "Order created successfully",
        "order": {
            **_order_summary(order),
            "razorpayOrderId": order.gateway_order_id,
            "amount": order.final_amount,
            "currency": settings.PAYMENT_GATEWAY.get('CURRENCY', 'INR'),
            "keyId": settings.PAYMENT_GATEWAY.get('KEY_ID', ''),
        },
    }, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([AllowAny])
def createCODOrder(request):
    serializer = CreateOrderRequestSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    order = create_order(serializer.validated_data, 'cod')
    return Response({
        "success": True,
        "message": "COD order created successfully",
        "order": _order_summary(order),
    }, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([AllowAny])
def verifyPayment(request):
    serializer = VerifyPaymentRequestSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    order = verify_payment(
        data['order_id'],
        data['razorpay_order_id'],
        data['razorpay_payment_id'],
        data['razorpay_signature'],
    )
    return Response({
        "success": True,
        "message": "Payment verified successfully",
        "order": _order_summary(order),
    }, status=status.HTTP_200_OK)


@api_view(['POST'])
@permission_classes([AllowAny])
def markPaymentFailed(request, order_id):
    serializer = PaymentFailedRequestSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    order = mark_payment_failed(order_id, serializer.validated_data['reason'])
    return Response({
        "success": True,
        "message": "Payment status updated to failed",
        "order": _order_summary(order),
    }, status=status.HTTP_200_OK)


@api_view(['GET', 'PUT'])
@permission_classes([IsStoreAdminOrReadOnly])
def storeSettings(request):
    store = StoreSettings.load()
    if request.method == 'GET':
        return Response({"success": True, "settings": StoreSettingsSerializer(store).data},
                        status=status.HTTP_200_OK)

    serializer = StoreSettingsSerializer(store, data=request.data, partial=True)
    serializer.is_valid(raise_exception=True)
    serializer.save(last_updated_by=request.user.get_username())
    logger.info("Store settings updated by %s", request.user.get_username())
    return Response({"success": True, "message": "Settings updated successfully",
                     "settings": serializer.data}, status=status.HTTP_200_OK)

import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from django.utils import timezone

from api.permissions import IsStoreAdmin, IsStoreAdminOrReadOnly
from products.catalog import get_snapshot
from .calculator import calculate_product_discount, get_categories_with_discounts
from .models import Discount
from .serializers import DiscountSerializer

logger = logging.getLogger(__name__)


# List discounts (public) or create one (admin)
@api_view(['GET', 'POST'])
@permission_classes([IsStoreAdminOrReadOnly])
def discounts(request):
    if request.method == 'POST':
        serializer = DiscountSerializer(data=request.data)
        if serializer.is_valid():
            discount = serializer.save()
            logger.info("Discount %s created (%s)", discount.pk, discount)
            return Response({
                "message": "Discount created successfully",
                "data": DiscountSerializer(discount).data,
            }, status=status.HTTP_201_CREATED)
        return Response({"message": "Invalid discount", "errors": serializer.errors},
                        status=status.HTTP_400_BAD_REQUEST)

    queryset = Discount.objects.select_related('product').all()
    scope = request.query_params.get('scope')
    category = request.query_params.get('category')
    is_active = request.query_params.get('isActive')
    if scope:
        queryset = queryset.filter(scope=scope)
    if category:
        queryset = queryset.filter(category=category)
    if is_active is not None:
        queryset = queryset.filter(is_active=is_active == 'true')

    discounts_list = list(queryset)
    # Expired and not-yet-started rules are hidden unless asked for
    if request.query_params.get('includeExpired') != 'true':
        now = timezone.now()
        discounts_list = [d for d in discounts_list if d.is_valid_at(now)]

    serializer = DiscountSerializer(discounts_list, many=True)
    return Response({"count": len(discounts_list), "data": serializer.data}, status=status.HTTP_200_OK)


@api_view(['GET', 'PUT', 'DELETE'])
@permission_classes([IsStoreAdminOrReadOnly])
def discountDetail(request, pk):
    try:
        discount = Discount.objects.select_related('product').get(pk=pk)
    except Discount.DoesNotExist:
        return Response({"message": "Discount not found"}, status=status.HTTP_404_NOT_FOUND)

    if request.method == 'GET':
        return Response(DiscountSerializer(discount).data, status=status.HTTP_200_OK)

    if request.method == 'DELETE':
        discount.delete()
        logger.info("Discount %s deleted", pk)
        return Response({"message": "Discount deleted successfully"}, status=status.HTTP_200_OK)

    serializer = DiscountSerializer(discount, data=request.data, partial=True)
    if serializer.is_valid():
        serializer.save()
        return Response({"message": "Discount updated successfully", "data": serializer.data},
                        status=status.HTTP_200_OK)
    return Response({"message": "Invalid discount", "errors": serializer.errors},
                    status=status.HTTP_400_BAD_REQUEST)


@api_view(['PATCH'])
@permission_classes([IsStoreAdmin])
def toggleDiscount(request, pk):
    try:
        discount = Discount.objects.get(pk=pk)
    except Discount.DoesNotExist:
        return Response({"message": "Discount not found"}, status=status.HTTP_404_NOT_FOUND)

    discount.is_active = not discount.is_active
    discount.save(update_fields=['is_active', 'updated_at'])
    state = 'activated' if discount.is_active else 'deactivated'
    return Response({"message": f"Discount {state} successfully", "data": DiscountSerializer(discount).data},
                    status=status.HTTP_200_OK)


# Best discount currently applicable to a product
@api_view(['GET'])
@permission_classes([AllowAny])
def getProductDiscount(request, product_id):
    product = get_snapshot(product_id)
    if product is None:
        return Response({"message": "Product not found"}, status=status.HTTP_404_NOT_FOUND)
    result = calculate_product_discount(product)
    return Response(result.as_dict(), status=status.HTTP_200_OK)


@api_view(['GET'])
@permission_classes([AllowAny])
def getDiscountedCategories(request):
    return Response({"categories": get_categories_with_discounts()}, status=status.HTTP_200_OK)

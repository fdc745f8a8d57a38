from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.parsers import MultiPartParser, FormParser, JSONParser

from apps.accounts.permissions import IsStoreStaff
from apps.catalog.services import ProductImageService
from .serializers import UploadImageSerializer, DeleteImageSerializer
from .services import ImageStorageService


class UploadImageView(APIView):
    """
    Multipart `file` (+ optional `productId` to attach the image to).
    """
    permission_classes = [IsStoreStaff]
    parser_classes = [MultiPartParser, FormParser]

    def post(self, request):
        serializer = UploadImageSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        product_id = serializer.validated_data.get("productId")

        upload = request.FILES.get("file")
        ImageStorageService.validate(upload)

        if product_id:
            # Refuse before the transfer rather than leave an orphan file
            ProductImageService.get_product(product_id)

        result = ImageStorageService.upload(upload)

        if product_id:
            ProductImageService.add_image(product_id, result["url"])

        return Response({"success": True, **result}, status=status.HTTP_200_OK)


class DeleteImageView(APIView):
    permission_classes = [IsStoreStaff]
    parser_classes = [JSONParser, FormParser]

    def post(self, request):
        serializer = DeleteImageSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        url = serializer.validated_data.get("url")
        product_id = serializer.validated_data.get("productId")

        if product_id:
            # The remote delete cannot be undone, so the product must exist first
            ProductImageService.get_product(product_id)

        ImageStorageService.delete(url)

        if product_id:
            ProductImageService.remove_image(product_id, url)

        return Response({"success": True, "message": "Image deleted successfully"})

from django.urls import path
from .views import UploadImageView, DeleteImageView

urlpatterns = [
    path('upload-image/', UploadImageView.as_view(), name='upload-image'),
    path('delete-image/', DeleteImageView.as_view(), name='delete-image'),
]

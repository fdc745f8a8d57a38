from django.urls import path, include
from rest_framework.routers import SimpleRouter
from .views import (
    AccountOrdersView,
    CartView,
    OrderViewSet,
    PrepareCheckoutView,
    ProcessCheckoutView,
    ValidateCartTotalView,
)

router = SimpleRouter()
router.register(r'', OrderViewSet, basename='order')

urlpatterns = [
    path('cart/', CartView.as_view(), name='cart'),
    path('validate-cart-total/', ValidateCartTotalView.as_view(), name='validate-cart-total'),
    path('checkout/prepare/', PrepareCheckoutView.as_view(), name='checkout-prepare'),
    path('checkout/', ProcessCheckoutView.as_view(), name='checkout'),
    path('account/', AccountOrdersView.as_view(), name='account-orders'),
    path('', include(router.urls)),
]

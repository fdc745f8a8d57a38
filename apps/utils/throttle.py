from rest_framework.throttling import UserRateThrottle, AnonRateThrottle


class BurstRateThrottle(UserRateThrottle):
    """
    Short window limit for every client.
    Scope: 'burst' (Configured in settings as 200/min)
    """
    scope = 'burst'


class SustainedRateThrottle(UserRateThrottle):
    """
    General API usage.
    """
    scope = 'sustained'


class CheckoutRateThrottle(AnonRateThrottle):
    """
    Checkout and cart validation hit the database and the payment provider.
    """
    scope = 'checkout'

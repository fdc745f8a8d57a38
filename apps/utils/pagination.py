from rest_framework.pagination import PageNumberPagination


class StandardResultsSetPagination(PageNumberPagination):
    """
    Storefront grids show 12 cards per page.
    """
    page_size = 12
    page_size_query_param = "page_size"
    max_page_size = 60

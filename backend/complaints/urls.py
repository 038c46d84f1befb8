"""
Complaints app URL configuration.

URL prefix (registered in ``backend/urls.py``)::

    path('api/', include('complaints.urls'))

Router-generated names: ``complaints:complaint-list``,
``complaints:complaint-detail``, ``complaints:complaint-accept``, …
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import ComplaintViewSet

app_name = "complaints"

router = DefaultRouter()
router.register(r"complaints", ComplaintViewSet, basename="complaint")

urlpatterns = [
    path("", include(router.urls)),
]

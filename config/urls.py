# config/urls.py

from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.urls import include, path

from . import views

# -------------------------------------------------------------------
# URL CONFIGURATION
# -------------------------------------------------------------------

urlpatterns = [
    # ----------------------------------------------------------------
    # Health & diagnostics
    # ----------------------------------------------------------------
    path("health/", views.health_check_view, name="health_check"),

    # ----------------------------------------------------------------
    # Authentication (django-allauth)
    # ----------------------------------------------------------------
    path("accounts/", include("allauth.urls")),

    # ----------------------------------------------------------------
    # Public endpoints (enrollment form, gateway callbacks)
    # ----------------------------------------------------------------
    path("enrollment/", include(("enrollment.urls", "enrollment"), namespace="enrollment")),
    path("billing/", include(("billing.urls", "billing"), namespace="billing")),
    path("tournaments/", include(("tournaments.urls", "tournaments"), namespace="tournaments")),

    # ----------------------------------------------------------------
    # Staff dashboard
    # ----------------------------------------------------------------
    path("dashboard/users/", include(("users.urls", "users"), namespace="users")),
    path("players/", include(("players.urls", "players"), namespace="players")),
    path("approvals/", include(("approvals.urls", "approvals"), namespace="approvals")),
    path("reports/", include(("reports.urls", "reports"), namespace="reports")),
    path("communications/", include(("communications.urls", "communications"), namespace="communications")),

    # ----------------------------------------------------------------
    # Admin
    # ----------------------------------------------------------------
    path("admin/", admin.site.urls),
]

# -------------------------------------------------------------------
# Error handlers
# -------------------------------------------------------------------

handler400 = "config.views.handler400"
handler403 = "config.views.handler403"
handler404 = "config.views.handler404"
handler500 = "config.views.handler500"

# -------------------------------------------------------------------
# Static & media (development only)
# -------------------------------------------------------------------

if settings.DEBUG:
    urlpatterns += static(
        settings.MEDIA_URL,
        document_root=settings.MEDIA_ROOT,
    )
    urlpatterns += static(
        settings.STATIC_URL,
        document_root=settings.STATIC_ROOT,
    )

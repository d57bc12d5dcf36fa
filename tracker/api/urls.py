from django.urls import include, path
from rest_framework.routers import DefaultRouter
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView

from tracker import views as function_views
from tracker.api import views

router = DefaultRouter()
router.register('sites', views.SiteViewSet, basename='site')
router.register('expenses', views.ExpenseViewSet, basename='expense')
router.register('advances', views.AdvanceViewSet, basename='advance')
router.register('funds-received', views.FundsReceivedViewSet, basename='funds-received')
router.register('invoices', views.InvoiceViewSet, basename='invoice')

urlpatterns = [
    path('auth/token/', views.CustomTokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('auth/refresh/', views.CustomTokenRefreshView.as_view(), name='token_refresh'),
    path('auth/me/', views.MeView.as_view(), name='me'),
    path('functions/increment-funds/', function_views.increment_funds, name='increment_funds'),
    path('schema/', SpectacularAPIView.as_view(), name='schema'),
    path('docs/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
    path('', include(router.urls)),
]

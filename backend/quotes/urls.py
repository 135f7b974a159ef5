from django.urls import path

from .views import (
    DashboardActivityView,
    DashboardStatsView,
    QuoteDetailView,
    QuoteListCreateView,
    QuotePreviewView,
    QuoteReviseView,
    QuoteStatusView,
)

urlpatterns = [
    path('quotes/preview', QuotePreviewView.as_view(), name='quote-preview'),
    path('quotes/', QuoteListCreateView.as_view(), name='quote-list'),
    path('quotes/<int:quote_id>/', QuoteDetailView.as_view(), name='quote-detail'),
    path('quotes/<int:quote_id>/status', QuoteStatusView.as_view(), name='quote-status'),
    path('quotes/<int:quote_id>/revise', QuoteReviseView.as_view(), name='quote-revise'),
    path('dashboard/stats', DashboardStatsView.as_view(), name='dashboard-stats'),
    path('dashboard/activity', DashboardActivityView.as_view(), name='dashboard-activity'),
]

from django.urls import path

from .views import QuoteRequestView, QuoteListCreateView, QuoteDetailView, QuoteActionView, QuoteBulkStatusView

ACTIONS = ("send", "accept", "convert", "reject", "expire", "reopen")

urlpatterns = [
    path("request/",              QuoteRequestView.as_view(),    name="quote-request"),
    path("bulk-status/",          QuoteBulkStatusView.as_view(), name="quote-bulk-status"),
    path("",                      QuoteListCreateView.as_view(), name="quote-list"),
    path("<str:quote_number>/",   QuoteDetailView.as_view(),     name="quote-detail"),
] + [
    path(f"<str:quote_number>/{action}/", QuoteActionView.as_view(transition=action), name=f"quote-{action}")
    for action in ACTIONS
]

# quotes/views.py
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.money import TWOPLACES
from .serializers import (
    PricingInputSerializer,
    QuoteInputSerializer,
    QuoteSerializer,
    ReviseInputSerializer,
    StatusInputSerializer,
    render_quote,
)
from .services import dashboard, quote_service


class QuotePreviewView(APIView):
    """Price a set of lines without saving anything."""
    permission_classes = [IsAuthenticated]

    def post(self, request):
        ser = PricingInputSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        priced = quote_service.preview_quote(
            ser.validated_data["quantity"],
            ser.validated_data["discount_percentage"],
            ser.selections(),
            user=request.user,
            inserts_count=ser.validated_data["inserts_count"],
        )
        return Response(priced.to_dict())


class QuoteListCreateView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        details = quote_service.list_quotes(request.user, search=request.query_params.get("search"))
        return Response([render_quote(detail, include_history=False) for detail in details])

    def post(self, request):
        ser = QuoteInputSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        detail = quote_service.create_quote(user=request.user, selections=ser.selections(), **ser.changes())
        return Response(render_quote(detail), status=status.HTTP_201_CREATED)


class QuoteDetailView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, quote_id):
        return Response(render_quote(quote_service.get_quote(quote_id, request.user)))

    def put(self, request, quote_id):
        ser = QuoteInputSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        detail = quote_service.update_quote(
            quote_id, user=request.user, selections=ser.selections(), **ser.changes()
        )
        return Response(render_quote(detail))


class QuoteStatusView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, quote_id):
        ser = StatusInputSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        quote = quote_service.set_status(quote_id, ser.validated_data["status"], user=request.user)
        return Response(QuoteSerializer(quote).data)


class QuoteReviseView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, quote_id):
        ser = ReviseInputSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        detail = quote_service.revise_quote(
            quote_id, user=request.user, selections=ser.selections(), **ser.changes()
        )
        return Response(render_quote(detail), status=status.HTTP_201_CREATED)


class DashboardStatsView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        stats = dashboard.dashboard_stats(request.user)
        stats["conversion_rate"] = str(stats["conversion_rate"].quantize(TWOPLACES))
        stats["won_value"] = str(stats["won_value"])
        stats["pipeline_value"] = str(stats["pipeline_value"])
        for row in stats["leaderboard"]:
            row["won_value"] = str(row["won_value"])
        return Response(stats)


class DashboardActivityView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        details = dashboard.recent_activity(request.user)
        return Response([render_quote(detail, include_history=False) for detail in details])

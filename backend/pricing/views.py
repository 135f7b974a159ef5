from rest_framework import status, viewsets
from rest_framework.response import Response

from accounts.permissions import CanManageRateCards
from .models import RateCard
from .serializers import RateCardInputSerializer, RateCardSerializer
from .services import catalog


class RateCardViewSet(viewsets.ViewSet):
    permission_classes = [CanManageRateCards]
    lookup_value_regex = r"\d+"

    def _render(self, rate_card_id, code=status.HTTP_200_OK):
        card = RateCard.objects.prefetch_related("bands").get(pk=rate_card_id)
        return Response(RateCardSerializer(card).data, status=code)

    def list(self, request):
        cards = RateCard.objects.prefetch_related("bands").order_by("name")
        return Response(RateCardSerializer(cards, many=True).data)

    def retrieve(self, request, pk=None):
        snapshot = catalog.get_rate_card(pk)
        return self._render(snapshot.id)

    def create(self, request):
        ser = RateCardInputSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        snapshot = catalog.create_rate_card(ser.validated_data)
        return self._render(snapshot.id, status.HTTP_201_CREATED)

    def update(self, request, pk=None):
        ser = RateCardInputSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        snapshot = catalog.update_rate_card(pk, ser.validated_data)
        return self._render(snapshot.id)

    def partial_update(self, request, pk=None):
        ser = RateCardInputSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        snapshot = catalog.update_rate_card(pk, ser.validated_data)
        return self._render(snapshot.id)

    def destroy(self, request, pk=None):
        catalog.delete_rate_card(pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

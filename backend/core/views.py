from __future__ import annotations

from django.conf import settings
from rest_framework import views
from rest_framework.response import Response

from accounts.permissions import IsManager
from core.rollout import RolloutEvaluator


class FeatureFlagsView(views.APIView):
    """Raw rollout flag values, plus how the category flag evaluates for the caller."""
    permission_classes = [IsManager]

    def get(self, request):
        evaluator = RolloutEvaluator()
        flag = getattr(settings, "CATEGORY_ROLLOUT_FLAG", "CATEGORY_SYSTEM")
        decision = evaluator.evaluate(flag, request.user.rollout_id)
        return Response(
            {
                "flags": evaluator.all_flags(),
                "category_system": {
                    "flag": flag,
                    "enabled": decision.enabled,
                    "reason": decision.reason,
                    "bucket": decision.bucket,
                },
            }
        )

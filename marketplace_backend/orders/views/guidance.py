# orders/views/guidance.py

"""
GUIDANCE BOOKING STATUS

GET /api/orders/guidance/<slot_id>/booking/

- booked: the caller holds the enrollment for this slot
- the meeting link is released from 10 minutes before the slot starts
"""

from __future__ import annotations

from datetime import datetime, timedelta

from django.shortcuts import get_object_or_404
from django.utils import timezone
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from catalog.models import GuidanceSlot
from orders.models import GuidanceEnrollment

LINK_RELEASE_WINDOW = timedelta(minutes=10)


def slot_starts_at(slot: GuidanceSlot) -> datetime:
    start = datetime.combine(slot.date, slot.start_time)
    return timezone.make_aware(start, timezone.get_current_timezone())


def can_access_link(slot: GuidanceSlot, *, now=None) -> bool:
    now = now or timezone.now()
    return now >= slot_starts_at(slot) - LINK_RELEASE_WINDOW


class GuidanceBookingView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(tags=["Orders"], responses={200: OpenApiTypes.OBJECT})
    def get(self, request, slot_id, *args, **kwargs):
        slot = get_object_or_404(GuidanceSlot.objects.select_related("guidance"), id=slot_id)

        booked = GuidanceEnrollment.objects.filter(user=request.user, slot=slot).exists()
        link_open = booked and can_access_link(slot)

        return Response(
            {
                "booked": booked,
                "canAccessLink": link_open,
                "googleMeetLink": slot.guidance.google_meet_link if link_open else None,
                "slotDate": slot.date,
                "startTime": slot.start_time,
                "endTime": slot.end_time,
            },
            status=status.HTTP_200_OK,
        )

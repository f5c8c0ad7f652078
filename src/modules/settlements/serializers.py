"""Settlement DRF serializers (read-only)."""

from __future__ import annotations

from dataclasses import asdict

from rest_framework import serializers

from modules.settlements.models import RiderSettlement, ShopSettlement, WeeklyPeriod


class WeeklyPeriodSerializer(serializers.ModelSerializer):
    class Meta:
        model = WeeklyPeriod
        fields = [
            "id",
            "year",
            "week_number",
            "start_date",
            "end_date",
            "status",
            "version",
            "closed_at",
            "settled_at",
        ]
        read_only_fields = fields


class ShopSettlementSerializer(serializers.ModelSerializer):
    shop_name = serializers.CharField(source="shop.name", read_only=True)

    class Meta:
        model = ShopSettlement
        fields = [
            "id",
            "shop_id",
            "shop_name",
            "period_id",
            "total_orders",
            "completed_orders",
            "cancelled_orders",
            "gross_sales",
            "commission_rate",
            "total_commission",
            "points_discounts",
            "free_delivery_costs",
            "ads_cost",
            "net_payable",
            "admin_net_commission",
            "personal_commission",
            "status",
            "settled_at",
        ]
        read_only_fields = fields


class RiderSettlementSerializer(serializers.ModelSerializer):
    class Meta:
        model = RiderSettlement
        fields = [
            "id",
            "rider_id",
            "period_id",
            "total_deliveries",
            "total_delivery_fees",
            "total_cash_handled",
            "commission_deducted",
            "net_earnings",
            "status",
            "settled_at",
        ]
        read_only_fields = fields


def serialize_settlement(settlement) -> dict:
    if isinstance(settlement, RiderSettlement):
        return {"party": "rider", **RiderSettlementSerializer(settlement).data}
    return {"party": "shop", **ShopSettlementSerializer(settlement).data}


def serialize_closed_period(result) -> dict:
    return {
        "period": WeeklyPeriodSerializer(result.period).data,
        "next_period": WeeklyPeriodSerializer(result.next_period).data,
        "shop_settlements": ShopSettlementSerializer(
            result.shop_settlements, many=True
        ).data,
        "rider_settlements": RiderSettlementSerializer(
            result.rider_settlements, many=True
        ).data,
    }


def serialize_report(report) -> dict:
    summary = {
        key: str(value) if not isinstance(value, int) else value
        for key, value in asdict(report.summary).items()
    }
    return {
        "period": WeeklyPeriodSerializer(report.period).data,
        "summary": summary,
        "reconciles": report.summary.reconciles(),
        "personal_commission_total": str(report.personal_commission_total),
        "shop_settlements": ShopSettlementSerializer(
            report.shop_settlements, many=True
        ).data,
        "rider_settlements": RiderSettlementSerializer(
            report.rider_settlements, many=True
        ).data,
    }

"""Diagnosis summary, per-heir allocation and the follow-up checklist."""

from souzoku.assets import net_assets, to_yen, total_negative, total_positive
from souzoku.heirs import classify_family
from souzoku.models import (
    ActionItem,
    AssetData,
    Classification,
    DashboardData,
    DiagnosisResult,
    FamilyData,
    FamilyMember,
    RelationKind,
    TaxCalculation,
)
from souzoku.tax import calculate_tax, life_insurance_exemption

RELATION_LABELS = {
    RelationKind.SELF: "本人",
    RelationKind.SPOUSE: "配偶者",
    RelationKind.CHILD: "子",
    RelationKind.PARENT: "親",
    RelationKind.SIBLING: "兄弟姉妹",
    RelationKind.ASCENDANT: "直系尊属",
    RelationKind.DESCENDANT: "孫（代襲相続）",
    RelationKind.NEPHEW_NIECE: "甥・姪（代襲相続）",
}


def diagnose(family: FamilyData, assets: AssetData) -> tuple[TaxCalculation, DiagnosisResult]:
    """Run the whole numeric pipeline for one wizard state."""
    heir_count = classify_family(family).heir_count
    gross = to_yen(total_positive(assets))
    calculation = calculate_tax(gross, to_yen(total_negative(assets)), heir_count)
    result = DiagnosisResult(
        total_assets=total_positive(assets),
        total_liabilities=total_negative(assets),
        net_assets=net_assets(assets),
        estimated_tax=calculation.estimated_tax,
        tax_rate=calculation.estimated_tax / gross * 100 if gross > 0 else 0.0,
        basic_deduction=calculation.basic_deduction,
    )
    return calculation, result


def family_members(
    classification: Classification, diagnosis: DiagnosisResult, has_asset_data: bool
) -> list[FamilyMember]:
    """
    One entry per heir with their civil share. Amounts and tax burdens (万円)
    are split in proportion to the share once assets are known.
    """
    members = []
    for heir in classification.heirs:
        share = float(heir.share)
        amount = tax = None
        if has_asset_data:
            amount = round(diagnosis.net_assets * share)
            tax = round(diagnosis.estimated_tax * share / 10_000)
        members.append(
            FamilyMember(
                id=heir.id,
                name=heir.name,
                relationship=RELATION_LABELS[heir.relation],
                inheritance_share=share,
                inheritance_amount=amount,
                inheritance_tax=tax,
            )
        )
    return members


def action_items(has_asset_data: bool, estimated_tax: int, heir_count: int) -> list[ActionItem]:
    items = []
    if has_asset_data and estimated_tax > 0:
        exemption_manen = life_insurance_exemption(heir_count) // 10_000
        items += [
            ActionItem(
                id="will-creation",
                title="遺言書の作成",
                description="相続税対策と円滑な相続のため、公正証書遺言の作成を検討してください。",
                priority="high",
                due_date="6ヶ月以内",
                estimated_cost=100_000,
            ),
            ActionItem(
                id="life-insurance",
                title="生命保険の活用",
                description=(
                    "相続税の非課税枠（500万円×法定相続人数"
                    f" = {exemption_manen:,}万円）を活用した生命保険への加入を検討してください。"
                ),
                priority="high",
                due_date="3ヶ月以内",
                estimated_cost=0,
            ),
            ActionItem(
                id="gift-tax-planning",
                title="贈与税の活用",
                description="年間110万円の基礎控除を活用した計画的な生前贈与を検討してください。",
                priority="medium",
                due_date="1年以内",
                estimated_cost=0,
            ),
        ]
    items += [
        ActionItem(
            id="family-meeting",
            title="家族会議の開催",
            description="相続について家族で話し合い、意思を共有することが重要です。",
            priority="medium",
            due_date="1ヶ月以内",
            estimated_cost=0,
        ),
        ActionItem(
            id="document-organization",
            title="重要書類の整理",
            description="不動産登記簿、預金通帳、保険証券などの重要書類を整理・保管してください。",
            priority="low",
            due_date="3ヶ月以内",
            estimated_cost=0,
        ),
    ]
    return items


def build_dashboard(family: FamilyData, assets: AssetData, has_asset_data: bool) -> DashboardData:
    classification = classify_family(family)
    calculation, result = diagnose(family, assets)
    return DashboardData(
        family_members=tuple(family_members(classification, result, has_asset_data)),
        action_items=tuple(
            action_items(has_asset_data, calculation.estimated_tax, calculation.heir_count)
        ),
        diagnosis_result=result,
        has_asset_data=has_asset_data,
    )

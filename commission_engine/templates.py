"""
Ready-made rule sets a company can start from.
"""

from datetime import date

from .models import CommissionRule

RULE_TEMPLATES = {
    "standard_tiered": {
        "name": "Standard Tiered Commission",
        "description": "Progressive rates: 3% (0-50k), 5% (50-100k), 7% (100-200k), 10% (200k+)",
        "rules": [
            {
                "name": "Standard Tiered Commission",
                "description": "Progressive commission rates based on achievement",
                "rule_type": "tiered",
                "priority": 100,
                "config": {"type": "graduated"},
                "calculation_type": "cumulative",
                "tiers": [
                    {"tier_number": 1, "threshold_min": 0, "threshold_max": 50000, "rate": 0.03, "type": "graduated"},
                    {"tier_number": 2, "threshold_min": 50000, "threshold_max": 100000, "rate": 0.05, "type": "graduated"},
                    {"tier_number": 3, "threshold_min": 100000, "threshold_max": 200000, "rate": 0.07, "type": "graduated"},
                    {"tier_number": 4, "threshold_min": 200000, "threshold_max": None, "rate": 0.10, "type": "graduated"},
                ],
            }
        ],
    },
    "accelerator_package": {
        "name": "Accelerator Package",
        "description": "Quarterly accelerator (1.5x at 100% attainment) and new business bonus (500)",
        "rules": [
            {
                "name": "New Business Bonus",
                "description": "Extra commission for new accounts",
                "rule_type": "bonus",
                "priority": 150,
                "config": {"amount": 500},
                "conditions": {
                    "all": [{"fact": "deal", "path": "$.is_new_business", "operator": "equal", "value": True}]
                },
                "calculation_type": "cumulative",
            },
            {
                "name": "Quarterly Accelerator",
                "description": "Bonus multiplier for exceeding quota",
                "rule_type": "accelerator",
                "priority": 200,
                "config": {"threshold": 100, "multiplier": 1.5},
                "conditions": {
                    "all": [{"fact": "attainmentPercentage", "operator": "greaterThanInclusive", "value": 100}]
                },
                "calculation_type": "replace",
            },
        ],
    },
}


def list_templates() -> list[dict]:
    return [
        {"id": key, "name": template["name"], "description": template["description"], "rules": len(template["rules"])}
        for key, template in RULE_TEMPLATES.items()
    ]


def build_rules(template_type: str, effective_from: date, company_id: str | None = None) -> list[CommissionRule]:
    """Instantiate a template's rules, effective from ``effective_from``."""
    template = RULE_TEMPLATES.get(template_type)
    if template is None:
        raise ValueError(f"Invalid template type: {template_type}")

    rules = []
    for data in template["rules"]:
        rule = CommissionRule.from_dict({**data, "company_id": company_id})
        rule.effective_from = effective_from
        rules.append(rule)
    return rules

"""
Starter rule set and catalog.

Rules are kept in the loose JSON shape used by the rule editor and converted
with `RecommendationRule.from_legacy`. Near-duplicate rules differ by one or
two priority points so they never tie.
"""

from app.schemas import Product, RecommendationRule

SAMPLE_RULES = [
    RecommendationRule.from_legacy(
        id=1,
        name="Oily + acne (moderate)",
        priority=91,
        conditions_json={
            "skinType": "oily",
            "concerns": {"hasSome": ["acne"]},
            "inflammation": {"gte": 40, "lte": 100},
        },
        steps_json={
            "cleanser": {"category": ["cleanser"], "skin_types": ["oily"]},
            "toner": {"category": ["toner"]},
            "serum": {
                "category": ["serum_niacinamide", "serum_salicylic"],
                "concerns": ["acne"],
                "max_items": 3,
            },
            "treatment": {"category": ["treatment_acne"], "concerns": ["acne"]},
            "moisturizer": {"category": ["moisturizer_light"]},
            "spf": {"category": ["spf"]},
            "mask": {"category": ["mask_clay"]},
        },
    ),
    RecommendationRule.from_legacy(
        id=2,
        name="Oily + acne (mild)",
        priority=89,
        conditions_json={
            "skinType": "oily",
            "concerns": {"hasSome": ["acne"]},
            "inflammation": {"lte": 39},
        },
        steps_json={
            "cleanser": {"category": ["cleanser"], "skin_types": ["oily"]},
            "serum": {"category": ["serum_niacinamide"], "concerns": ["acne"], "max_items": 2},
            "moisturizer": {"category": ["moisturizer_light"]},
            "spf": {"category": ["spf"]},
        },
    ),
    RecommendationRule.from_legacy(
        id=3,
        name="Dry + pigmentation",
        priority=60,
        conditions_json={
            "skinType": ["dry", "combination_dry"],
            "concerns": {"hasSome": ["pigmentation"]},
        },
        steps_json={
            "cleanser": {"category": ["cleanser_gentle"]},
            "serum": {"category": ["serum_vitamin_c"], "concerns": ["pigmentation"], "max_items": 2},
            "treatment": {"category": ["treatment_retinoid"]},
            "cream": {"category": ["cream"]},
            "spf": {"category": ["spf"]},
            "peel": {"category": ["peel"]},
        },
    ),
    RecommendationRule.from_legacy(
        id=4,
        name="Sensitive — soothing",
        priority=50,
        conditions_json={"sensitivityLevel": "high"},
        steps_json={
            "cleanser": {"category": ["cleanser_gentle"]},
            "serum": {"category": ["serum_anti_redness"]},
            "moisturizer": {"category": ["moisturizer_barrier"]},
            "spf": {"category": ["spf"]},
            "mask": {"category": ["mask_soothing"]},
        },
    ),
    RecommendationRule.from_legacy(
        id=10,
        name="Oily — base care",
        priority=6,
        conditions_json={"skinType": "oily"},
        steps_json={
            "cleanser": {"category": ["cleanser"]},
            "serum": {"category": ["serum_niacinamide"]},
            "moisturizer": {"category": ["moisturizer_light"]},
            "spf": {"category": ["spf"]},
        },
    ),
    RecommendationRule.from_legacy(
        id=11,
        name="Combination oily — base care",
        priority=6,
        conditions_json={"skinType": "combination_oily"},
        steps_json={
            "cleanser": {"category": ["cleanser"]},
            "toner": {"category": ["toner"]},
            "moisturizer": {"category": ["moisturizer_light"]},
            "spf": {"category": ["spf"]},
        },
    ),
    RecommendationRule.from_legacy(
        id=12,
        name="Dry — base care",
        priority=5,
        conditions_json={"skinType": "dry"},
        steps_json={
            "cleanser": {"category": ["cleanser_gentle"]},
            "serum": {"category": ["serum_hydrating"]},
            "cream": {"category": ["cream"]},
            "spf": {"category": ["spf"]},
        },
    ),
    RecommendationRule.from_legacy(
        id=13,
        name="Normal — base care",
        priority=5,
        conditions_json={"skinType": "normal"},
        steps_json={
            "cleanser": {"category": ["cleanser_gentle"]},
            "moisturizer": {"category": ["moisturizer"]},
            "spf": {"category": ["spf"]},
        },
    ),
]


def _product(id, name, brand, step, **kwargs) -> Product:
    return Product(id=id, name=name, brand=brand, step=step, **kwargs)


SAMPLE_PRODUCTS = [
    # Cleansers
    _product(101, "Gentle Foaming Cleanser", "CeraVe", "cleanser_gentle",
             skin_types=["dry", "normal", "sensitive", "combination"], priority=5),
    _product(102, "Effaclar Purifying Gel", "La Roche-Posay", "cleanser_oil_control",
             skin_types=["oily", "combination"], concerns=["acne"], is_hero=True, priority=8),
    _product(103, "Salicylic Acid Cleanser", "CeraVe", "cleanser_acne",
             skin_types=["oily"], concerns=["acne"], priority=6),
    # Toners
    _product(201, "Hydrating Toner", "Klairs", "toner_hydrating",
             skin_types=["dry", "normal", "sensitive"], priority=3),
    _product(202, "BHA Toner", "COSRX", "toner_bha",
             skin_types=["oily", "combination"], concerns=["acne"], avoid_if=["rosacea"], priority=4),
    # Serums
    _product(301, "Niacinamide 10% + Zinc", "The Ordinary", "serum_niacinamide",
             skin_types=["oily", "combination"], concerns=["acne", "pores"], is_hero=True, priority=9),
    _product(302, "Niacinamide Booster", "Paula's Choice", "serum_niacinamide",
             skin_types=["oily", "combination", "normal"], concerns=["acne", "pores"], priority=7),
    _product(303, "Salicylic Acid 2% Solution", "The Ordinary", "serum_salicylic",
             skin_types=["oily"], concerns=["acne"], avoid_if=["pregnant"], priority=6),
    _product(304, "Vitamin C 15%", "La Roche-Posay", "serum_vitamin_c",
             skin_types=["dry", "normal", "combination"], concerns=["pigmentation", "dullness"], priority=8),
    _product(305, "Ascorbyl Glucoside 12%", "The Ordinary", "serum_vitamin_c",
             skin_types=["dry", "normal"], concerns=["pigmentation"], priority=5),
    _product(306, "Hyaluronic Acid 2% + B5", "The Ordinary", "serum_hydrating",
             skin_types=["dry", "normal", "sensitive", "combination"], concerns=["dehydration"], priority=6),
    _product(307, "Cicaplast Serum", "La Roche-Posay", "serum_anti_redness",
             skin_types=["sensitive", "dry"], concerns=["redness"], priority=6),
    # Treatments
    _product(401, "Effaclar Duo+", "La Roche-Posay", "treatment_acne",
             skin_types=["oily", "combination"], concerns=["acne"], is_hero=True, priority=9),
    _product(402, "Adapalene Gel 0.1%", "Differin", "treatment_acne",
             skin_types=["oily"], concerns=["acne"], avoid_if=["pregnant"], priority=7),
    _product(403, "Retinol 0.3%", "Paula's Choice", "treatment_retinoid",
             skin_types=["dry", "normal", "combination"], concerns=["pigmentation", "wrinkles"],
             avoid_if=["pregnant", "very_high_sensitivity"], priority=7),
    # Moisturizers
    _product(501, "Oil-Free Moisturizer", "Neutrogena", "moisturizer_light",
             skin_types=["oily", "combination", "normal"], priority=5),
    _product(502, "Moisturizing Cream", "CeraVe", "moisturizer_rich",
             skin_types=["dry", "sensitive"], is_hero=True, priority=8),
    _product(503, "Toleriane Sensitive", "La Roche-Posay", "moisturizer_barrier",
             skin_types=["sensitive", "dry"], concerns=["redness"], priority=7),
    # SPF
    _product(601, "Anthelios UVMune 400", "La Roche-Posay", "spf_50_face",
             skin_types=["oily", "dry", "normal", "sensitive", "combination"], is_hero=True, priority=9),
    _product(602, "Invisible Fluid SPF 50", "Bioderma", "spf_50_face",
             skin_types=["oily", "combination"], priority=6),
    # Weekly
    _product(701, "Clay Mask", "Kiehl's", "mask_clay",
             skin_types=["oily", "combination"], concerns=["acne", "pores"], priority=6),
    _product(702, "Soothing Sheet Mask", "Klairs", "mask_soothing",
             skin_types=["sensitive", "dry"], concerns=["redness"], priority=5),
    _product(703, "AHA 30% + BHA 2% Peel", "The Ordinary", "peel_aha_bha",
             skin_types=["normal", "oily", "combination", "dry"], concerns=["pigmentation", "texture"],
             avoid_if=["pregnant", "rosacea", "very_high_sensitivity"], priority=5),
    # Unpublished
    _product(901, "Discontinued Gel Cleanser", "Generic", "cleanser_gentle",
             skin_types=["oily", "dry", "normal"], is_hero=True, priority=10, published=False),
]

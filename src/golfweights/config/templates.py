"""Built-in course-type weight templates used to seed an empty template store."""

from __future__ import annotations

from typing import Dict, Iterable, Mapping, Tuple

_BUILTIN_TEMPLATES: Dict[str, dict] = {
    "POWER": {
        "name": "POWER",
        "eventId": None,
        "description": "Weights for distance-heavy courses",
        "groupWeights": {
            "Driving Performance": 0.130,
            "Approach - Short (<100)": 0.145,
            "Approach - Mid (100-150)": 0.180,
            "Approach - Long (150-200)": 0.150,
            "Approach - Very Long (>200)": 0.030,
            "Putting": 0.120,
            "Around the Green": 0.080,
            "Scoring": 0.110,
            "Course Management": 0.055,
        },
        "metricWeights": {
            "Driving Performance": {"Driving Distance": 0.404, "Driving Accuracy": 0.123, "SG OTT": 0.472},
            "Approach - Short (<100)": {"Approach <100 GIR": 0.14, "Approach <100 SG": 0.33, "Approach <100 Prox": 0.53},
            "Approach - Mid (100-150)": {
                "Approach <150 FW GIR": 0.12,
                "Approach <150 FW SG": 0.32,
                "Approach <150 FW Prox": 0.56,
                "Approach <150 Rough GIR": 0.12,
                "Approach <150 Rough SG": 0.32,
                "Approach <150 Rough Prox": 0.56,
            },
            "Approach - Long (150-200)": {
                "Approach <200 FW GIR": 0.11,
                "Approach <200 FW SG": 0.30,
                "Approach <200 FW Prox": 0.59,
                "Approach >150 Rough GIR": 0.11,
                "Approach >150 Rough SG": 0.30,
                "Approach >150 Rough Prox": 0.59,
            },
            "Approach - Very Long (>200)": {"Approach >200 FW GIR": 0.10, "Approach >200 FW SG": 0.25, "Approach >200 FW Prox": 0.65},
            "Putting": {"SG Putting": 1.0},
            "Around the Green": {"SG Around Green": 1.0},
            "Scoring": {
                "SG T2G": 0.20,
                "Scoring Average": 0.10,
                "Birdie Chances Created": 0.10,
                "Scoring: Approach <100 SG": 0.15,
                "Scoring: Approach <150 FW SG": 0.15,
                "Scoring: Approach <150 Rough SG": 0.15,
                "Scoring: Approach <200 FW SG": 0.05,
                "Scoring: Approach >200 FW SG": 0.00,
                "Scoring: Approach >150 Rough SG": 0.10,
            },
            "Course Management": {
                "Scrambling": 0.12,
                "Great Shots": 0.08,
                "Poor Shot Avoidance": 0.08,
                "Course Management: Approach <100 Prox": 0.10,
                "Course Management: Approach <150 FW Prox": 0.10,
                "Course Management: Approach <150 Rough Prox": 0.15,
                "Course Management: Approach >150 Rough Prox": 0.20,
                "Course Management: Approach <200 FW Prox": 0.12,
                "Course Management: Approach >200 FW Prox": 0.05,
            },
        },
    },
    "TECHNICAL": {
        "name": "TECHNICAL",
        "eventId": None,
        "description": "Weights for precision courses",
        "groupWeights": {
            "Driving Performance": 0.065,
            "Approach - Short (<100)": 0.148,
            "Approach - Mid (100-150)": 0.185,
            "Approach - Long (150-200)": 0.167,
            "Approach - Very Long (>200)": 0.037,
            "Putting": 0.107,
            "Around the Green": 0.125,
            "Scoring": 0.097,
            "Course Management": 0.069,
        },
        "metricWeights": {
            "Driving Performance": {"Driving Distance": 0.086, "Driving Accuracy": 0.354, "SG OTT": 0.560},
            "Approach - Short (<100)": {"Approach <100 GIR": 0.09, "Approach <100 SG": 0.32, "Approach <100 Prox": 0.59},
            "Approach - Mid (100-150)": {
                "Approach <150 FW GIR": 0.09,
                "Approach <150 FW SG": 0.29,
                "Approach <150 FW Prox": 0.62,
                "Approach <150 Rough GIR": 0.09,
                "Approach <150 Rough SG": 0.29,
                "Approach <150 Rough Prox": 0.62,
            },
            "Approach - Long (150-200)": {
                "Approach <200 FW GIR": 0.08,
                "Approach <200 FW SG": 0.27,
                "Approach <200 FW Prox": 0.65,
                "Approach >150 Rough GIR": 0.08,
                "Approach >150 Rough SG": 0.27,
                "Approach >150 Rough Prox": 0.65,
            },
            "Approach - Very Long (>200)": {"Approach >200 FW GIR": 0.08, "Approach >200 FW SG": 0.22, "Approach >200 FW Prox": 0.70},
            "Putting": {"SG Putting": 1.0},
            "Around the Green": {"SG Around Green": 1.0},
            "Scoring": {
                "SG T2G": 0.18,
                "Scoring Average": 0.12,
                "Birdie Chances Created": 0.10,
                "Scoring: Approach <100 SG": 0.083,
                "Scoring: Approach <150 FW SG": 0.298,
                "Scoring: Approach <150 Rough SG": 0.298,
                "Scoring: Approach <200 FW SG": 0.448,
                "Scoring: Approach >200 FW SG": 0.056,
                "Scoring: Approach >150 Rough SG": 0.056,
            },
            "Course Management": {
                "Scrambling": 0.12,
                "Great Shots": 0.08,
                "Poor Shot Avoidance": 0.08,
                "Course Management: Approach <100 Prox": 0.068,
                "Course Management: Approach <150 FW Prox": 0.121,
                "Course Management: Approach <150 Rough Prox": 0.121,
                "Course Management: Approach >150 Rough Prox": 0.364,
                "Course Management: Approach <200 FW Prox": 0.023,
                "Course Management: Approach >200 FW Prox": 0.023,
            },
        },
    },
    "BALANCED": {
        "name": "BALANCED",
        "eventId": None,
        "description": "Weights for balanced courses",
        "groupWeights": {
            "Driving Performance": 0.090,
            "Approach - Short (<100)": 0.148,
            "Approach - Mid (100-150)": 0.190,
            "Approach - Long (150-200)": 0.160,
            "Approach - Very Long (>200)": 0.035,
            "Putting": 0.115,
            "Around the Green": 0.100,
            "Scoring": 0.105,
            "Course Management": 0.057,
        },
        "metricWeights": {
            "Driving Performance": {"Driving Distance": 0.061, "Driving Accuracy": 0.410, "SG OTT": 0.529},
            "Approach - Short (<100)": {"Approach <100 GIR": 0.12, "Approach <100 SG": 0.34, "Approach <100 Prox": 0.54},
            "Approach - Mid (100-150)": {
                "Approach <150 FW GIR": 0.10,
                "Approach <150 FW SG": 0.30,
                "Approach <150 FW Prox": 0.60,
                "Approach <150 Rough GIR": 0.10,
                "Approach <150 Rough SG": 0.30,
                "Approach <150 Rough Prox": 0.60,
            },
            "Approach - Long (150-200)": {
                "Approach <200 FW GIR": 0.09,
                "Approach <200 FW SG": 0.28,
                "Approach <200 FW Prox": 0.63,
                "Approach >150 Rough GIR": 0.09,
                "Approach >150 Rough SG": 0.28,
                "Approach >150 Rough Prox": 0.63,
            },
            "Approach - Very Long (>200)": {"Approach >200 FW GIR": 0.09, "Approach >200 FW SG": 0.24, "Approach >200 FW Prox": 0.67},
            "Putting": {"SG Putting": 1.0},
            "Around the Green": {"SG Around Green": 1.0},
            "Scoring": {
                "SG T2G": 0.19,
                "Scoring Average": 0.11,
                "Birdie Chances Created": 0.10,
                "Scoring: Approach <100 SG": 0.15,
                "Scoring: Approach <150 FW SG": 0.15,
                "Scoring: Approach <150 Rough SG": 0.15,
                "Scoring: Approach <200 FW SG": 0.07,
                "Scoring: Approach >200 FW SG": 0.03,
                "Scoring: Approach >150 Rough SG": 0.05,
            },
            "Course Management": {
                "Scrambling": 0.12,
                "Great Shots": 0.08,
                "Poor Shot Avoidance": 0.08,
                "Course Management: Approach <100 Prox": 0.12,
                "Course Management: Approach <150 FW Prox": 0.12,
                "Course Management: Approach <150 Rough Prox": 0.16,
                "Course Management: Approach >150 Rough Prox": 0.18,
                "Course Management: Approach <200 FW Prox": 0.11,
                "Course Management: Approach >200 FW Prox": 0.03,
            },
        },
    },
}

COURSE_TYPES: Tuple[str, ...] = ("POWER", "TECHNICAL", "BALANCED")


def iter_builtin_templates() -> Iterable[Mapping]:
    """Return the raw payloads of the built-in templates in course-type order."""

    return [_BUILTIN_TEMPLATES[name] for name in COURSE_TYPES]


def get_builtin_template(name: str) -> Mapping:
    key = name.upper()
    if key not in _BUILTIN_TEMPLATES:
        raise KeyError(f"No built-in template named {name!r}")
    return _BUILTIN_TEMPLATES[key]

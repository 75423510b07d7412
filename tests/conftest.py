"""
Forge Steel importer - test configuration and fixtures.
A small Codex catalog and two sample heroes shared across the suite.
"""
import copy
import logging
from typing import Any, Dict

import pytest

from importer.catalog import Catalog
from importer.import_log import LogContext


# ==================== Catalog Fixtures ====================

CATALOG_DATA: Dict[str, Any] = {
    "tables": {
        "Skills": {
            "skill-perf": {"name": "Performance"},
            "skill-hist": {"name": "History"},
            "skill-climb": {"name": "Climb"},
            "skill-lie": {"name": "Lie"},
            "skill-sneak": {"name": "Sneak", "hidden": True},
        },
        "Languages": {
            "lang-anjal": {"name": "Anjal"},
            "lang-caelian": {"name": "Caelian"},
            "lang-vaslorian": {"name": "Vaslorian"},
        },
        "feats": {
            "feat-got-you": {"name": "I've Got You!"},
            "feat-lucky": {"name": "Lucky Dog"},
        },
        "Deities": {
            "deity-all": {"name": "All Domains"},
        },
        "DeityDomains": {
            "domain-war": {"name": "War"},
            "domain-life": {"name": "Life"},
        },
        "races": {
            "race-elf-high": {
                "name": "Elf, High",
                "levels": [
                    {
                        "level": 1,
                        "features": [
                            {
                                "typeName": "CharacterFeatureChoice",
                                "guid": "anc-choice",
                                "name": "High Elf Traits",
                                "options": [
                                    {"name": "Glamor of Terror", "guid": "opt-glamor"},
                                    {"name": "Graceful Retreat", "guid": "opt-retreat"},
                                ],
                            }
                        ],
                    }
                ],
            },
        },
        "cultureAspects": {
            "asp-urban": {
                "name": "Urban",
                "features": [
                    {"typeName": "CharacterSkillChoice", "guid": "urban-skill", "categories": ["interpersonal"]}
                ],
            },
            "asp-bureaucratic": {
                "name": "Bureaucratic",
                "features": [
                    {"typeName": "CharacterSkillChoice", "guid": "bur-skill", "categories": ["lore"]}
                ],
            },
            "asp-academic": {
                "name": "Academic",
                "features": [
                    {"typeName": "CharacterSkillChoice", "guid": "acad-skill", "categories": ["interpersonal"]}
                ],
            },
        },
        "backgrounds": {
            "bg-artisan": {
                "name": "Artisan",
                "features": [
                    {"typeName": "CharacterLanguageChoice", "guid": "career-lang"},
                    {
                        "typeName": "CharacterSkillChoice",
                        "guid": "career-skill",
                        "categories": {"crafting": True, "lore": False},
                    },
                ],
            },
        },
        "incitingIncidents": {
            "inc-near-death": {"name": "Near Death Experience"},
        },
        "classes": {
            "class-censor": {
                "name": "Censor",
                "levels": [
                    {
                        "level": 1,
                        "features": [
                            {"typeName": "CharacterDeityChoice", "guid": "censor-deity", "name": "Deity and Domain"},
                            {
                                "typeName": "CharacterSkillChoice",
                                "guid": "censor-skill",
                                "name": "Censor Skill",
                                "categories": ["interpersonal"],
                            },
                            {"typeName": "CharacterSubclassChoice", "guid": "censor-order", "name": "Censor Order"},
                            {
                                "typeName": "CharacterFeatureChoice",
                                "guid": "censor-ability",
                                "name": "Signature Ability",
                                "options": [
                                    {"name": "Halt Miscreant!", "guid": "opt-halt"},
                                    {"name": "Judgment", "guid": "opt-judgment"},
                                ],
                            },
                            {
                                "typeName": "Feature",
                                "guid": "war-domain-feature",
                                "name": "War Domain Feature",
                                "features": [
                                    {
                                        "typeName": "CharacterSkillChoice",
                                        "guid": "war-skill",
                                        "name": "Skill",
                                        "categories": ["exploration"],
                                    }
                                ],
                            },
                        ],
                    },
                    {
                        "level": 2,
                        "features": [{"typeName": "CharacterFeatChoice", "guid": "censor-perk", "name": "Perk"}],
                    },
                    {
                        "level": 3,
                        "features": [{"typeName": "CharacterFeatChoice", "guid": "censor-perk-3", "name": "Perk"}],
                    },
                ],
            },
            "class-conduit": {
                "name": "Conduit",
                "levels": [
                    {
                        "level": 1,
                        "features": [
                            {
                                "typeName": "CharacterDeityChoice",
                                "guid": "conduit-deity",
                                "name": "Deity",
                                "useSubclass": True,
                            },
                            {"typeName": "CharacterSubclassChoice", "guid": "conduit-dom1", "name": "1st Domain"},
                            {"typeName": "CharacterSubclassChoice", "guid": "conduit-dom2", "name": "2nd Domain"},
                        ],
                    }
                ],
            },
        },
        "subclasses": {
            "sub-exorcist": {
                "name": "Exorcist",
                "levels": [
                    {
                        "level": 1,
                        "features": [
                            {"typeName": "CharacterSkillChoice", "guid": "exorcist-skill", "categories": ["lore"]}
                        ],
                    }
                ],
            },
            "sub-war-domain": {
                "name": "War Domain",
                "levels": [
                    {
                        "level": 1,
                        "features": [
                            {"typeName": "CharacterSkillChoice", "guid": "war-dom-skill", "categories": ["exploration"]}
                        ],
                    }
                ],
            },
            "sub-life-domain": {
                "name": "Life Domain",
                "levels": [
                    {
                        "level": 1,
                        "features": [
                            {"typeName": "CharacterSkillChoice", "guid": "life-dom-skill", "categories": ["lore"]}
                        ],
                    }
                ],
            },
        },
        "kits": {
            "kit-mountain": {"name": "Mountain"},
            "kit-rapid": {"name": "Rapid-Fire"},
            "kit-panther": {"name": "Panther"},
        },
    },
}


@pytest.fixture
def catalog_data() -> Dict[str, Any]:
    """Raw catalog dictionary (a fresh copy per test)."""
    return copy.deepcopy(CATALOG_DATA)


@pytest.fixture
def catalog(catalog_data) -> Catalog:
    return Catalog.from_dict(catalog_data)


@pytest.fixture
def ctx() -> LogContext:
    """Logging context on the 'importer' logger with an empty issue list."""
    return LogContext(logging.getLogger("importer"))


# ==================== Hero Fixtures ====================

SAMPLE_HERO: Dict[str, Any] = {
    "id": "hero-1",
    "name": "Sister Vex",
    "ancestry": {
        "name": "Elf (high)",
        "features": [
            {
                "type": "Choice",
                "name": "High Elf Traits",
                "data": {"selected": [{"name": "Graceful Retreat", "description": "Shift 1 more square."}]},
            }
        ],
    },
    "culture": {
        "name": "Urban Bureaucrats",
        "languages": ["Vaslorian", "Caelian"],
        "environment": {
            "name": "Urban",
            "type": "Skill Choice",
            "data": {"selected": ["Lie"], "listOptions": ["interpersonal"]},
        },
        "organization": {
            "name": "Bureaucratic",
            "type": "Skill Choice",
            "data": {"selected": ["History"], "listOptions": ["lore"]},
        },
        "upbringing": {
            "name": "Academic",
            "type": "Skill Choice",
            "data": {"selected": ["Perform"], "listOptions": ["interpersonal"]},
        },
    },
    "career": {
        "name": "Artisan",
        "features": [
            {"type": "Language Choice", "name": "Language", "data": {"selected": ["Anjali"]}},
            {
                "type": "Skill Choice",
                "name": "Crafting Skill",
                "data": {"selected": ["Climb"], "listOptions": ["crafting"]},
            },
        ],
        "incitingIncidents": {
            "selectedID": "NDE",
            "options": [
                {"id": "betrayal", "name": "Betrayal"},
                {"id": "nde", "name": "Near-Death Experience"},
            ],
        },
    },
    "class": {
        "name": "Censor",
        "level": 2,
        "characteristics": [
            {"characteristic": "Might", "value": 2},
            {"characteristic": "Agility", "value": -1},
            {"characteristic": "Reason", "value": 0},
            {"characteristic": "Intuition", "value": 1},
            {"characteristic": "Presence", "value": 2},
        ],
        "abilities": [
            {"id": "censor-ability-halt", "name": "Halt, Miscreant!", "description": "Stop right there."},
            {"id": "censor-ability-judgment", "name": "Judgment", "description": "You are judged."},
        ],
        "featuresByLevel": [
            {
                "level": 1,
                "features": [
                    {
                        "type": "Skill Choice",
                        "name": "Censor Skill",
                        "data": {"selected": ["Perform"], "listOptions": ["interpersonal"]},
                    },
                    {
                        "type": "Class Ability",
                        "name": "Signature Ability",
                        "data": {"selectedIDs": ["censor-ability-halt"]},
                    },
                    {"type": "Kit", "name": "Kit", "data": {"selected": [{"name": "Mountain"}]}},
                    {"type": "Domain", "name": "Domain", "data": {"selected": [{"name": "War"}]}},
                    {
                        "type": "Domain Feature",
                        "name": "Domain Feature",
                        "data": {
                            "selected": [
                                {
                                    "id": "domain-war-1",
                                    "name": "War Domain Skill",
                                    "type": "Skill Choice",
                                    "data": {"selected": ["Climb"], "listOptions": ["exploration"]},
                                }
                            ]
                        },
                    },
                ],
            },
            {
                "level": 2,
                "features": [
                    {"type": "Perk", "name": "Perk", "data": {"selected": [{"name": "I've Got You", "type": "Perk"}]}}
                ],
            },
        ],
        "subclasses": [
            {"name": "Oracle", "selected": False, "featuresByLevel": []},
            {
                "name": "Exorcist",
                "selected": True,
                "featuresByLevel": [
                    {
                        "level": 1,
                        "features": [
                            {
                                "type": "Skill Choice",
                                "name": "Exorcist Skill",
                                "data": {"selected": ["History"], "listOptions": ["lore"]},
                            }
                        ],
                    }
                ],
            },
        ],
    },
}

CONDUIT_HERO: Dict[str, Any] = {
    "id": "hero-2",
    "name": "Brother Aldo",
    "class": {
        "name": "Conduit",
        "level": 1,
        "characteristics": [{"characteristic": "Intuition", "value": 2}],
        "abilities": [],
        "featuresByLevel": [
            {
                "level": 1,
                "features": [
                    {
                        "type": "Domain",
                        "name": "Domain",
                        "data": {
                            "selected": [
                                {
                                    "name": "War",
                                    "featuresByLevel": [
                                        {
                                            "level": 1,
                                            "features": [
                                                {
                                                    "type": "Skill Choice",
                                                    "name": "War Skill",
                                                    "data": {"selected": ["Climb"], "listOptions": ["exploration"]},
                                                }
                                            ],
                                        }
                                    ],
                                },
                                {
                                    "name": "Life",
                                    "featuresByLevel": [
                                        {
                                            "level": 1,
                                            "features": [
                                                {
                                                    "type": "Skill Choice",
                                                    "name": "Life Skill",
                                                    "data": {"selected": ["History"], "listOptions": ["lore"]},
                                                }
                                            ],
                                        }
                                    ],
                                },
                            ]
                        },
                    }
                ],
            }
        ],
    },
}


@pytest.fixture
def sample_hero() -> Dict[str, Any]:
    """A level 2 Censor with a War domain, Exorcist order and a full origin."""
    return copy.deepcopy(SAMPLE_HERO)


@pytest.fixture
def conduit_hero() -> Dict[str, Any]:
    """A level 1 Conduit whose two domains are taken as subclasses."""
    return copy.deepcopy(CONDUIT_HERO)

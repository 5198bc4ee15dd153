from typing import Any, Dict, List


BREED_CATEGORIES: Dict[str, List[str]] = {
    "sizes": [
        "Tiny (under 5 lbs)",
        "Small (5-20 lbs)",
        "Medium (21-50 lbs)",
        "Large (51-90 lbs)",
        "Extra Large (90+ lbs)",
    ],
    "smallBreeds": [
        "Dachshund",
        "French Bulldog",
        "Pug",
        "Yorkshire Terrier",
        "Chihuahua",
        "Shih Tzu",
    ],
    "mediumBreeds": [
        "Border Collie",
        "Bulldog",
        "Beagle",
        "Cocker Spaniel",
        "Australian Shepherd",
        "Corgi",
    ],
    "largeBreeds": [
        "German Shepherd",
        "Golden Retriever",
        "Labrador Retriever",
        "Husky",
        "Doberman",
        "Rottweiler",
    ],
}

ALL_BREEDS: List[str] = [breed for group in BREED_CATEGORIES.values() for breed in group]


# Demo records loaded into an empty store. Austin, TX neighbourhoods.
SEED_USERS: List[Dict[str, Any]] = [
    {
        "uid": "user_maya",
        "name": "Maya Ortiz",
        "bio": "Former vet tech. Daily walks around Zilker and Barton Springs.",
        "role": {"owner": False, "host": True},
        "services": {"walk": True, "daycare": True, "boarding": False},
        "accepted_breeds": ["Pug", "Beagle", "Corgi", "Small (5-20 lbs)"],
        "location": {"lat": 30.2669, "lng": -97.7729, "address": "Zilker, Austin, TX"},
        "rates": {"walk": "22", "daycare": "40"},
        "rate_type": "per_hour",
        "photo_url": "https://images.pawpals.app/hosts/maya.jpg",
        "created_at": "2025-01-12T16:00:00+00:00",
    },
    {
        "uid": "user_dev",
        "name": "Dev Patel",
        "bio": "Big yard in Mueller, happy to board large dogs.",
        "role": {"owner": True, "host": True},
        "services": {"walk": False, "daycare": True, "boarding": True},
        "accepted_breeds": ["Husky", "German Shepherd", "Labrador Retriever", "Large (51-90 lbs)"],
        "location": {"lat": 30.2984, "lng": -97.7048, "address": "Mueller, Austin, TX"},
        "rate": "55",
        "rate_type": "per_day",
        "photo_url": "https://images.pawpals.app/hosts/dev.jpg",
        "created_at": "2025-02-03T18:30:00+00:00",
    },
    {
        "uid": "user_lena",
        "name": "Lena Brooks",
        "bio": "Drop-in visits and training refreshers in Round Rock.",
        "role": {"owner": False, "host": True},
        "services": {"drop-in": True, "training": True},
        "accepted_breeds": ["Border Collie", "Australian Shepherd", "Golden Retriever"],
        "location": {"lat": 30.5083, "lng": -97.6789, "address": "Round Rock, TX"},
        "rates": {"drop-in": "18", "training": "60"},
        "rate_type": "per_hour",
        "created_at": "2025-03-21T10:15:00+00:00",
    },
    {
        "uid": "user_sam",
        "name": "Sam Nguyen",
        "bio": "",
        "role": {"owner": True, "host": False},
        "services": {},
        "location": {"lat": 30.2500, "lng": -97.7500, "address": "Travis Heights, Austin, TX"},
        "photo_url": "https://images.pawpals.app/owners/sam.jpg",
        "created_at": "2025-01-30T09:00:00+00:00",
    },
]

SEED_JOBS: List[Dict[str, Any]] = [
    {
        "id": "job_pug_walks",
        "owner_uid": "user_sam",
        "owner_name": "Sam Nguyen",
        "service_type": "walk",
        "description": "Midday walks for two pugs, Monday to Friday.",
        "location": {"lat": 30.2500, "lng": -97.7500, "address": "Travis Heights, Austin, TX"},
        "rate": "20",
        "rate_type": "per_hour",
        "start_date": "2026-11-02T12:00:00",
        "end_date": "2026-11-27T13:00:00",
        "breeds": ["Pug"],
        "created_at": "2026-10-01T08:00:00+00:00",
        "status": "open",
    },
    {
        "id": "job_husky_boarding",
        "owner_uid": "user_dev",
        "owner_name": "Dev Patel",
        "service_type": "boarding",
        "description": "Boarding for an energetic husky over Thanksgiving.",
        "location": {"lat": 30.2984, "lng": -97.7048, "address": "Mueller, Austin, TX"},
        "rate": "65",
        "rate_type": "per_day",
        "start_date": "2026-11-25T09:00:00",
        "end_date": "2026-11-30T18:00:00",
        "breeds": ["Husky", "Large (51-90 lbs)"],
        "created_at": "2026-10-05T14:20:00+00:00",
        "status": "open",
    },
]

SEED_REVIEWS: List[Dict[str, Any]] = [
    {
        "id": "rev_maya_1",
        "provider_id": "user_maya",
        "reviewer_id": "user_sam",
        "reviewer_name": "Sam Nguyen",
        "rating": 5,
        "comment": "Our pugs came home tired and happy.",
        "service_type": "walk",
        "created_at": "2025-06-01T17:00:00+00:00",
    },
    {
        "id": "rev_maya_2",
        "provider_id": "user_maya",
        "reviewer_id": "user_dev",
        "reviewer_name": "Dev Patel",
        "rating": 4,
        "comment": "Reliable and sends photos.",
        "service_type": "daycare",
        "created_at": "2025-07-14T12:30:00+00:00",
    },
    {
        "id": "rev_dev_1",
        "provider_id": "user_dev",
        "reviewer_id": "user_sam",
        "reviewer_name": "Sam Nguyen",
        "rating": 5,
        "comment": "Great with big dogs.",
        "service_type": "boarding",
        "created_at": "2025-08-09T08:45:00+00:00",
    },
]

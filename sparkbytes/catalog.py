"""Static reference data: dietary tags, campus buildings, roles, map defaults."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

DietaryCategory = Literal[
    "allergens",
    "preferences",
    "intolerances",
    "religious",
    "special",
    "general",
]


@dataclass(frozen=True)
class DietaryTag:
    id: str
    name: str
    category: DietaryCategory


@dataclass(frozen=True)
class Building:
    id: str
    name: str
    coordinates: tuple[float, float]
    address: str


ROLE_STUDENT = "student"
ROLE_FACULTY = "faculty"
ROLES = {ROLE_STUDENT, ROLE_FACULTY}

STATUS_AVAILABLE = "available"
STATUS_STARTING_SOON = "starting_soon"
STATUS_ENDED = "ended"
STATUS_CANCELLED = "cancelled"
EVENT_STATUSES = {
    STATUS_AVAILABLE,
    STATUS_STARTING_SOON,
    STATUS_ENDED,
    STATUS_CANCELLED,
}
OPEN_STATUSES = (STATUS_AVAILABLE, STATUS_STARTING_SOON)

FOOD_TEMPERATURES = ("hot", "cold", "room temperature")

# Boston University, [longitude, latitude]
CAMPUS_CENTER: tuple[float, float] = (-71.1097, 42.3505)
DEFAULT_ZOOM = 15
DEFAULT_PITCH = 45
DEFAULT_BEARING = -17.6
MAP_STYLE = "mapbox://styles/mapbox/standard"

DIETARY_TAGS: tuple[DietaryTag, ...] = (
    DietaryTag("nut_free", "Nut-Free", "allergens"),
    DietaryTag("contains_nuts", "Contains Nuts", "allergens"),
    DietaryTag("peanut_free", "Peanut-Free", "allergens"),
    DietaryTag("contains_peanuts", "Contains Peanuts", "allergens"),
    DietaryTag("tree_nut_free", "Tree Nut-Free", "allergens"),
    DietaryTag("contains_tree_nuts", "Contains Tree Nuts", "allergens"),
    DietaryTag("gluten_free", "Gluten-Free", "allergens"),
    DietaryTag("contains_gluten", "Contains Gluten", "allergens"),
    DietaryTag("dairy_free", "Dairy-Free", "allergens"),
    DietaryTag("contains_dairy", "Contains Dairy", "allergens"),
    DietaryTag("egg_free", "Egg-Free", "allergens"),
    DietaryTag("contains_eggs", "Contains Eggs", "allergens"),
    DietaryTag("soy_free", "Soy-Free", "allergens"),
    DietaryTag("contains_soy", "Contains Soy", "allergens"),
    DietaryTag("fish_free", "Fish-Free", "allergens"),
    DietaryTag("contains_fish", "Contains Fish", "allergens"),
    DietaryTag("shellfish_free", "Shellfish-Free", "allergens"),
    DietaryTag("contains_shellfish", "Contains Shellfish", "allergens"),
    DietaryTag("sesame_free", "Sesame-Free", "allergens"),
    DietaryTag("contains_sesame", "Contains Sesame", "allergens"),
    DietaryTag("wheat_free", "Wheat-Free", "allergens"),
    DietaryTag("contains_wheat", "Contains Wheat", "allergens"),
    DietaryTag("mustard_free", "Mustard-Free", "allergens"),
    DietaryTag("contains_mustard", "Contains Mustard", "allergens"),
    DietaryTag("sulfite_free", "Sulfite-Free", "allergens"),
    DietaryTag("contains_sulfites", "Contains Sulfites", "allergens"),
    DietaryTag("corn_free", "Corn-Free", "allergens"),
    DietaryTag("contains_corn", "Contains Corn", "allergens"),
    DietaryTag("coconut_free", "Coconut-Free", "allergens"),
    DietaryTag("contains_coconut", "Contains Coconut", "allergens"),
    DietaryTag("vegetarian", "Vegetarian", "preferences"),
    DietaryTag("vegan", "Vegan", "preferences"),
    DietaryTag("pescatarian", "Pescatarian", "preferences"),
    DietaryTag("plant_based", "Plant-Based", "preferences"),
    DietaryTag("halal", "Halal", "preferences"),
    DietaryTag("non_halal", "Non-Halal", "preferences"),
    DietaryTag("kosher", "Kosher", "preferences"),
    DietaryTag("non_kosher", "Non-Kosher", "preferences"),
    DietaryTag("paleo", "Paleo", "preferences"),
    DietaryTag("keto", "Keto", "preferences"),
    DietaryTag("low_carb", "Low-Carb", "preferences"),
    DietaryTag("low_fat", "Low-Fat", "preferences"),
    DietaryTag("low_sodium", "Low-Sodium", "preferences"),
    DietaryTag("low_sugar", "Low-Sugar", "preferences"),
    DietaryTag("sugar_free", "Sugar-Free", "preferences"),
    DietaryTag("diabetic_friendly", "Diabetic-Friendly", "preferences"),
    DietaryTag("organic", "Organic", "preferences"),
    DietaryTag("non_gmo", "Non-GMO", "preferences"),
    DietaryTag("whole30", "Whole30 Compliant", "preferences"),
    DietaryTag("heart_healthy", "Heart-Healthy", "preferences"),
    DietaryTag("low_fodmap", "Low FODMAP", "preferences"),
    DietaryTag("lactose_free", "Lactose-Free", "intolerances"),
    DietaryTag("contains_lactose", "Contains Lactose", "intolerances"),
    DietaryTag("fructose_free", "Fructose-Free", "intolerances"),
    DietaryTag("nightshade_free", "Nightshade-Free", "intolerances"),
    DietaryTag("histamine_free", "Histamine-Free", "intolerances"),
    DietaryTag("onion_free", "Onion-Free", "intolerances"),
    DietaryTag("garlic_free", "Garlic-Free", "intolerances"),
    DietaryTag("spicy", "Spicy", "intolerances"),
    DietaryTag("mild", "Mild", "intolerances"),
    DietaryTag("jain", "Jain Diet (no root vegetables)", "religious"),
    DietaryTag("hindu", "Hindu Diet (no beef)", "religious"),
    DietaryTag("buddhist", "Buddhist Diet (often vegetarian)", "religious"),
    DietaryTag("baby_friendly", "Baby-Friendly", "special"),
    DietaryTag("kid_friendly", "Kid-Friendly", "special"),
    DietaryTag("senior_friendly", "Senior-Friendly", "special"),
    DietaryTag("contains_alcohol", "Contains Alcohol", "general"),
    DietaryTag("alcohol_free", "Alcohol-Free", "general"),
    DietaryTag("caffeine_free", "Caffeine-Free", "general"),
    DietaryTag("contains_caffeine", "Contains Caffeine", "general"),
)

DIETARY_TAGS_BY_ID = {tag.id: tag for tag in DIETARY_TAGS}

BUILDINGS: tuple[Building, ...] = (
    Building("gsu", "George Sherman Union (GSU)", (-71.10877, 42.35119), "775 Commonwealth Avenue"),
    Building("pho", "Photonics Center (PHO)", (-71.10600, 42.34922), "8 St Mary's St"),
    Building("qsb", "Questrom School of Business (QSB)", (-71.09957, 42.34969), "595 Commonwealth Avenue"),
    Building("kch", "Kilachand Hall Study Lounge (KCH)", (-71.09653, 42.35033), "91 Bay State Road"),
    Building("cas", "College of Arts & Sciences (CAS)", (-71.10480, 42.35023), "725 Commonwealth Avenue"),
    Building("yaw", "Yawkey Center for Student Services (YAW)", (-71.09787, 42.34979), "100 Bay State Road"),
    Building("ing", "Ingalls Engineering Resource Center (ING)", (-71.10288, 42.34862), "44 Cummington Mall"),
    Building("sv2", "StuVi II Study Lounge (SV2)", (-71.11781, 42.35339), "33 Harry Agganis Way"),
    Building("whl", "Wheelock College (WHL)", (-71.10088, 42.34973), "2 Silber Way"),
    Building("sel", "Science & Engineering Library (SEL)", (-71.10080, 42.34860), "38 Cummington Mall"),
    Building("htc", "Howard Thurman Center (HTC)", (-71.11140, 42.35000), "808 Commonwealth Avenue"),
    Building("hjo", "HoJo (HJO)", (-71.09853, 42.34955), "575 Commonwealth Avenue"),
    Building("cds", "Duan Family Center for Computing & Data Science (CDS)", (-71.10311, 42.34991), "665 Commonwealth Avenue"),
    Building("sto", "Stone Science Library (STO)", (-71.10362, 42.35013), "725 Commonwealth Avenue, Room 440"),
    Building("sth", "School of Theology Library (STH)", (-71.10706, 42.35051), "745 Commonwealth Avenue, 2nd Floor"),
    Building("cgs", "College of General Studies (CGS)", (-71.11464, 42.35150), "871 Commonwealth Avenue"),
    Building("bsm", "Buick Street Market & Cafe (BSM)", (-71.11559, 42.35211), "10 Buick Street"),
    Building("sar", "Sargent College (SAR)", (-71.10194, 42.34977), "635 Commonwealth Avenue"),
    Building("wcs", "West Campus Study Spaces (WCS)", (-71.1203468, 42.3531346), "275 Babcock Street"),
    Building("fcc", "Fenway Campus Center (FCC)", (-71.10517, 42.34299), "150 Riverway"),
)

BUILDINGS_BY_ID = {building.id: building for building in BUILDINGS}


def get_building(building_id: str) -> Building | None:
    return BUILDINGS_BY_ID.get((building_id or "").strip().lower())


def tags_in_category(category: DietaryCategory) -> list[DietaryTag]:
    return [tag for tag in DIETARY_TAGS if tag.category == category]

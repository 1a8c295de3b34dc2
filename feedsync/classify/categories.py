"""
Product category classification.
Maps a merchant category string and a product title to one of the catalog tags.

Tier 1 looks only at the merchant category (substring patterns, Spanish and English).
Tier 2 falls back to whole-word patterns over "category + title".
In both tiers the order of the list is the tie-break: the first group that matches wins.
"""
from __future__ import annotations

import re
from typing import Optional

MUSIC = "music"
BOOKS = "books"
MOVIES = "movies"
TECH = "tech-electronics"
FASHION = "fashion"
HOME = "home-garden"
BABY = "baby-kids"
SPORTS = "sports-outdoors"
COLLECTIBLES = "collectibles-art"
DIY = "diy"
BEAUTY = "beauty-personal-care"
MOTOR = "motor-accessories"
TRAVEL = "travel-experiences"

CATEGORIES: tuple[str, ...] = (
    MUSIC,
    BOOKS,
    MOVIES,
    TECH,
    FASHION,
    HOME,
    BABY,
    SPORTS,
    COLLECTIBLES,
    DIY,
    BEAUTY,
    MOTOR,
    TRAVEL,
)

UNCLASSIFIED = None

# Tier 1: merchant category text. Order matters.
_CATEGORY_RULES: list[tuple[str, re.Pattern[str]]] = [
    (MUSIC, re.compile(r"música|musica|music|cd|vinyl|vinilo|disco|grabaciones|album")),
    (BOOKS, re.compile(r"libros|books|literatura|novela|comic|cómic|manga")),
    (MOVIES, re.compile(r"dvd|movies|película|pelicula|cine|blu-ray|streaming")),
    (TECH, re.compile(
        r"electronics|computers|phones|tecnología|tecnologia|informática|informatica|"
        r"electrónica|electronica|audio|video|consolas|gaming|videojuegos"
    )),
    (FASHION, re.compile(
        r"apparel|clothing|shoes|accessories|ropa|moda|calzado|accesorios|joyería|joyeria|"
        r"jewelry|relojes|watches"
    )),
    (HOME, re.compile(
        r"home|garden|furniture|kitchen|hogar|jardín|jardin|muebles|cocina|decoración|decoracion"
    )),
    (BABY, re.compile(r"toys|baby|games|juguetes|bebé|bebe|niños|ninos|infantil")),
    (SPORTS, re.compile(r"sports|fitness|deportes|gimnasio|aire libre|camping|outdoor")),
    (COLLECTIBLES, re.compile(r"arts|hobbies|crafts|arte|ocio|coleccionismo|papelería|papeleria")),
    (DIY, re.compile(r"tools|hardware|herramientas|bricolaje|diy")),
    (BEAUTY, re.compile(r"belleza|beauty|perfume|perfumería|perfumeria|cosmética|cosmetica|maquillaje")),
    (MOTOR, re.compile(r"motor|coche|moto|car|motorcycle|recambios|automoción|automocion")),
    (TRAVEL, re.compile(r"viajes|travel|hotel|vuelo|experiencias|escapadas")),
]


def _words(*words: str) -> re.Pattern[str]:
    return re.compile(r"\b(" + "|".join(words) + r")\b")


# Tier 2: "category + title", whole words only. Media first so "Nino Rota (CD)" is music, not kids.
_TITLE_RULES: list[tuple[str, re.Pattern[str]]] = [
    (MUSIC, _words("cd", "vinyl", "vinilo", "lp", "music", "album", "álbum", "musica", "música", "disco")),
    (BOOKS, _words("book", "libro", "novela", "comic", "cómic", "manga")),
    (MOVIES, _words("dvd", "blu-ray", "movie", "pelicula", "película", "cine")),
    (TECH, _words(
        "iphone", "laptop", "macbook", "samsung", "pixel", "tablet", "ordenador", "portatil", "portátil",
        "gaming", "switch", "ps5", "xbox", "monitor", "auriculares", "headphones", "smartwatch",
    )),
    (FASHION, _words(
        "shirt", "dress", "jeans", "jacket", "sneakers", "shoes", "bag", "watch", "ropa", "camiseta",
        "vestido", "zapatos", "zapatillas", "bolso", "reloj", "joya", "pulsera", "collar",
    )),
    (HOME, _words(
        "sofa", "sofá", "chair", "table", "lamp", "bed", "furniture", "home", "hogar", "mueble", "mesa",
        "lampara", "lámpara", "decoracion", "decoración", "cojin", "cojín",
    )),
    (BABY, _words("toy", "lego", "doll", "baby", "juguete", "bebe", "bebé", "nino", "niño", "nina", "niña", "peluche")),
    (SPORTS, _words(
        "bike", "bicycle", "gym", "fitness", "yoga", "sports", "deporte", "bici", "bicicleta", "gimnasio",
        "futbol", "fútbol", "tenis", "running", "camping",
    )),
    (COLLECTIBLES, _words("art", "painting", "collectible", "arte", "pintura", "coleccion", "colección", "funko")),
    (DIY, _words("drill", "hammer", "tool", "herramienta", "taladro", "martillo", "bricolaje")),
    (BEAUTY, _words("makeup", "maquillaje", "perfume", "crema", "beauty", "belleza", "colonia")),
    (MOTOR, _words("coche", "moto", "casco", "neumatico", "neumático", "car")),
    (TRAVEL, _words("viaje", "hotel", "escapada", "experiencia", "vuelo")),
]


def _first_match(text: str, rules: list[tuple[str, re.Pattern[str]]]) -> Optional[str]:
    for tag, pattern in rules:
        if pattern.search(text):
            return tag
    return None


def classify(raw_category: Optional[str], title: Optional[str]) -> Optional[str]:
    """
    Return the catalog tag for a product, or None when nothing matches.
    Never raises; None inputs behave like empty strings.
    """
    raw_category = raw_category or ""
    title = title or ""

    if raw_category.strip():
        tag = _first_match(raw_category.lower(), _CATEGORY_RULES)
        if tag:
            return tag

    return _first_match(f"{raw_category} {title}".lower(), _TITLE_RULES)

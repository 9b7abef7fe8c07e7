"""
Static product catalog: easyplant plants and Mixtiles photo-tile arrangements.

Plant size classes follow the supplier's height bands:
    small  (9"-16")  - tables and small surfaces
    medium (11"-26") - regular surfaces or the floor next to furniture
    large  (23"-40") - big empty spaces
    huge   (40"-69") - very large empty spaces
"""

PLANT_PRODUCTS = [
    {
        "id": 1,
        "name": "Anthurium Red - Small",
        "category": "plant",
        "size_class": "small",
        "image_url": "anthurium-red.webp",
        "description": "Beautiful red anthurium flowers in a terracotta pot",
        "price": "From $39",
        "light_level": "Medium Light",
        "pet_friendly": False,
        "height": "9-16 inches",
        "pot_width": "5.6 inches",
        "pot_height": "4.8 inches",
    },
    {
        "id": 2,
        "name": "Parlor Palm - Small",
        "category": "plant",
        "size_class": "small",
        "image_url": "parlor-palm.webp",
        "description": "Elegant parlor palm in a beige ceramic pot",
        "price": "From $39",
        "light_level": "Low Light",
        "pet_friendly": False,
        "height": "9-16 inches",
        "pot_width": "5.1 inches",
        "pot_height": "5.1 inches",
    },
    {
        "id": 3,
        "name": "Money Tree - Medium",
        "category": "plant",
        "size_class": "medium",
        "image_url": "money-tree.webp",
        "description": "Braided money tree in a mint green pot",
        "price": "From $45",
        "light_level": "Medium Light",
        "pet_friendly": True,
        "height": "11-26 inches",
        "pot_width": "7 inches",
        "pot_height": "5.8 inches",
    },
    {
        "id": 4,
        "name": "Snake Plant - Medium",
        "category": "plant",
        "size_class": "medium",
        "image_url": "snake-plant.webp",
        "description": "Striking snake plant in a bright yellow pot",
        "price": "From $39",
        "light_level": "Low Light",
        "pet_friendly": False,
        "height": "11-26 inches",
        "pot_width": "7.6 inches",
        "pot_height": "6.4 inches",
    },
    {
        "id": 5,
        "name": "Pothos - Large",
        "category": "plant",
        "size_class": "large",
        "image_url": "pothos.webp",
        "description": "Cascading pothos in a modern gray pot",
        "price": "From $39",
        "light_level": "Low Light",
        "pet_friendly": False,
        "height": "23-40 inches",
        "pot_width": "10.9 inches",
        "pot_height": "9.9 inches",
    },
    {
        "id": 6,
        "name": "Fiddle Leaf Fig - Huge",
        "category": "plant",
        "size_class": "huge",
        "image_url": "fiddle-leaf-fig.webp",
        "description": "Majestic fiddle leaf fig in a large ceramic pot",
        "price": "From $89",
        "light_level": "Bright Light",
        "pet_friendly": False,
        "height": "40-69 inches",
        "pot_width": "10.9 inches",
        "pot_height": "9.9 inches",
    },
]

TILE_PRODUCTS = [
    {
        "id": 7,
        "name": "Wall Tile 1",
        "category": "tile",
        "picture_count": 4,
        "image_url": "pictures/wall-1.webp",
        "description": "Beautiful wall tile design for your space",
        "price": "From $29",
    },
    {
        "id": 8,
        "name": "Wall Tile 2",
        "category": "tile",
        "picture_count": 3,
        "image_url": "pictures/wall-2.webp",
        "description": "Elegant wall tile design for your space",
        "price": "From $29",
    },
]

# Display order interleaves plants and tiles
ALL_PRODUCTS = [
    PLANT_PRODUCTS[0],
    TILE_PRODUCTS[0],
    PLANT_PRODUCTS[1],
    TILE_PRODUCTS[1],
    PLANT_PRODUCTS[2],
    PLANT_PRODUCTS[3],
    PLANT_PRODUCTS[4],
    PLANT_PRODUCTS[5],
]

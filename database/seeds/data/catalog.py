"""
Starter catalog: the brands and best-selling makes of the Dominican market.

Spec values are typed the way the back-office stores them; the numeric
columns are derived by the seeder.
"""

BRANDS: list[dict] = [
    {"name": "Honda", "type": "both"},
    {"name": "Yamaha", "type": "motorcycle"},
    {"name": "Suzuki", "type": "both"},
    {"name": "Kawasaki", "type": "motorcycle"},
    {"name": "Bajaj", "type": "motorcycle"},
    {"name": "KTM", "type": "motorcycle"},
]

MAKES: list[dict] = [
    {
        "brand": "Honda",
        "name": "CB500F",
        "type": "Naked",
        "engine_size": "471 cc",
        "horsepower": "47 HP",
        "torque": "43 Nm",
        "fuel_capacity": "17.1 L",
        "cylinders": 2,
        "weight": "189 kg",
        "seat_height": "785 mm",
        "top_speed": "185 km/h",
        "market_presence": "Alta",
        "price_range_new": "RD$450,000 - RD$520,000",
        "price_range_used": "RD$280,000 - RD$360,000",
        "country_origin": "Japón",
        "year_from": 2013,
        "available_colors": "Rojo, Negro, Gris Mate",
        "key_features": "Bicilíndrico paralelo, ABS, faro LED",
    },
    {
        "brand": "Honda",
        "name": "XR150L",
        "type": "Dual Sport",
        "engine_size": "149 cc",
        "horsepower": "12.5 HP",
        "torque": "12.4 Nm",
        "fuel_capacity": "12 L",
        "cylinders": 1,
        "weight": "129 kg",
        "market_presence": "Alta",
        "price_range_new": "RD$165,000 - RD$185,000",
        "price_range_used": "RD$90,000 - RD$130,000",
        "country_origin": "Brasil",
        "year_from": 2014,
        "available_colors": "Rojo, Blanco",
    },
    {
        "brand": "Yamaha",
        "name": "MT-07",
        "type": "Naked",
        "engine_size": "689 cc",
        "horsepower": "73 HP",
        "torque": "67 Nm",
        "fuel_capacity": "14 L",
        "cylinders": 2,
        "weight": "184 kg",
        "seat_height": "805 mm",
        "top_speed": "214 km/h",
        "market_presence": "Media",
        "price_range_new": "RD$620,000 - RD$700,000",
        "country_origin": "Japón",
        "year_from": 2014,
        "available_colors": "Azul, Negro, Gris",
        "key_features": "Motor CP2 crossplane, ABS",
    },
    {
        "brand": "Yamaha",
        "name": "NMAX 155",
        "type": "Scooter",
        "engine_size": "155 cc",
        "horsepower": "15 HP",
        "torque": "13.9 Nm",
        "fuel_capacity": "7.1 L",
        "cylinders": 1,
        "weight": "131 kg",
        "market_presence": "Alta",
        "price_range_new": "RD$210,000 - RD$240,000",
        "country_origin": "Indonesia",
        "year_from": 2015,
        "available_colors": "Blanco, Negro Mate",
    },
    {
        "brand": "Suzuki",
        "name": "GN125",
        "type": "Standard",
        "engine_size": "124 cc",
        "horsepower": "11 HP",
        "torque": "9.5 Nm",
        "fuel_capacity": "10 L",
        "cylinders": 1,
        "weight": "112 kg",
        "market_presence": "Alta",
        "price_range_new": "RD$95,000 - RD$110,000",
        "country_origin": "China",
        "year_from": 1982,
        "available_colors": "Negro, Rojo",
    },
    {
        "brand": "Kawasaki",
        "name": "Z650",
        "type": "Naked",
        "engine_size": "649 cc",
        "horsepower": "67 HP",
        "torque": "64 Nm",
        "fuel_capacity": "15 L",
        "cylinders": 2,
        "weight": "187 kg",
        "seat_height": "790 mm",
        "market_presence": "Media",
        "price_range_new": "RD$560,000 - RD$610,000",
        "country_origin": "Japón",
        "year_from": 2017,
        "available_colors": "Verde, Negro",
    },
    {
        "brand": "Bajaj",
        "name": "Pulsar NS200",
        "type": "Naked",
        "engine_size": "199.5 cc",
        "horsepower": "24.5 HP",
        "torque": "18.7 Nm",
        "fuel_capacity": "12 L",
        "cylinders": 1,
        "weight": "159 kg",
        "market_presence": "Alta",
        "price_range_new": "RD$175,000 - RD$195,000",
        "country_origin": "India",
        "year_from": 2012,
        "available_colors": "Rojo, Azul, Gris",
    },
    {
        "brand": "KTM",
        "name": "390 Adventure",
        "type": "Adventure",
        "engine_size": "373 cc",
        "horsepower": "43 HP",
        "torque": "37 Nm",
        "fuel_capacity": "14.5 L",
        "cylinders": 1,
        "weight": "172 kg",
        "seat_height": "855 mm",
        "market_presence": "Baja",
        "price_range_new": "RD$480,000 - RD$530,000",
        "country_origin": "Austria",
        "year_from": 2020,
        "can_import": True,
        "available_colors": "Naranja, Blanco",
    },
]

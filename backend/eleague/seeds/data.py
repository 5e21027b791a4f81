DEFAULT_ADMIN = {
    "email": "admin@eleague.gg",
    "username": "admin",
    "password": "Admin@2026",
}

DEMO_PASSWORD = "Player@2026"

# (team name, captain tag)
TEAMS = [
    ("Nairobi Nitro", "nitro_cap"),
    ("Mombasa Mariners", "mariner_cap"),
    ("Kisumu Kraken", "kraken_cap"),
    ("Eldoret Eagles", "eagle_cap"),
    ("Nakuru Nomads", "nomad_cap"),
    ("Thika Titans", "titan_cap"),
    ("Machakos Mavericks", "maverick_cap"),
    ("Nyeri Ninjas", "ninja_cap"),
]

PLAYERS_PER_TEAM = 4

GAMER_TAGS = [
    "ShadowStrike", "PixelPhantom", "NeonViper", "FrostByte", "IronLynx",
    "BlazeRunner", "ZeroLag", "CrimsonAce", "StormBreaker", "NightOwl",
    "TurboHawk", "GhostPass", "RapidFire", "SilentKeeper", "VoltEdge",
    "ApexStriker", "LunarWing", "HyperDrive", "ToxicTackle", "NovaShot",
    "DarkMatter", "QuickSilver", "RogueMid", "SteelWall", "WildCard",
    "EchoFive", "CobraKick", "FlashPoint", "GridIron", "MegaNutmeg",
    "SolarFlare", "ThunderBolt",
]

FORMATIONS = ["4-3-3", "4-4-2", "4-2-3-1", "3-5-2", "5-3-2"]

"""
Commodity types understood by the price prediction service.

The upstream URL embeds the label as a path segment, so only members of
``CommodityType`` ever reach it, each through its pre-encoded segment.
"""

from enum import Enum
from typing import Dict
from urllib.parse import quote

from agritrack.errors import ValidationFailed


class CommodityType(str, Enum):
    BAWANG_MERAH = "Bawang Merah"
    BAWANG_PUTIH = "Bawang Putih Bonggol"
    BERAS_MEDIUM = "Beras Medium"
    BERAS_PREMIUM = "Beras Premium"
    CABAI_MERAH_KERITING = "Cabai Merah Keriting"
    CABAI_RAWIT_MERAH = "Cabai Rawit Merah"
    DAGING_AYAM_RAS = "Daging Ayam Ras"
    DAGING_SAPI_MURNI = "Daging Sapi Murni"
    GULA_KONSUMSI = "Gula Konsumsi"
    JAGUNG_PETERNAK = "Jagung Tk Peternak"
    KEDELAI_BIJI_KERING = "Kedelai Biji Kering (Impor)"
    MINYAK_GORENG_CURAH = "Minyak Goreng Curah"
    MINYAK_GORENG_KEMASAN = "Minyak Goreng Kemasan Sederhana"
    TELUR_AYAM_RAS = "Telur Ayam Ras"
    TEPUNG_TERIGU = "Tepung Terigu (Curah)"


COMMODITY_PATH_SEGMENTS: Dict[CommodityType, str] = {
    commodity: quote(commodity.value, safe="")
    for commodity in CommodityType
}


def parse_commodity(label: str) -> CommodityType:
    """
    Resolve a client label to a known commodity.

    Matching is exact; only surrounding whitespace is ignored.

    Raises:
        ValidationFailed: the label is not a known commodity
    """
    try:
        return CommodityType(label.strip())
    except ValueError:
        raise ValidationFailed(
            "Unknown commodity type.",
            errors=[{
                "field": "commodityType",
                "message": "Unknown commodity type",
                "type": "enum",
            }],
        )


def path_segment(commodity: CommodityType) -> str:
    return COMMODITY_PATH_SEGMENTS[commodity]

from .assets import (
    IneaAsset, IteaAsset, NoListadoAsset, POOL_MODELS,
    ORIGIN_INEA, ORIGIN_ITEA, ORIGIN_NO_LISTADO, ORIGIN_POOLS,
    ASSET_STATUS_ACTIVE, ASSET_STATUS_INACTIVE, ASSET_STATUS_WRITTEN_OFF,
)
from .custody import CustodyRecord, DecommissionRecord, FolioClaim
from .directory import Area, Director, DirectorArea
from .events import ChangeEvent

__all__ = [
    'IneaAsset', 'IteaAsset', 'NoListadoAsset', 'POOL_MODELS',
    'ORIGIN_INEA', 'ORIGIN_ITEA', 'ORIGIN_NO_LISTADO', 'ORIGIN_POOLS',
    'ASSET_STATUS_ACTIVE', 'ASSET_STATUS_INACTIVE', 'ASSET_STATUS_WRITTEN_OFF',
    'CustodyRecord', 'DecommissionRecord', 'FolioClaim',
    'Area', 'Director', 'DirectorArea',
    'ChangeEvent',
]

"""
Route-level dependencies for the media store and the asset releaser.

Tests replace both through ``app.dependency_overrides`` keyed on
``get_media_store`` / ``get_asset_releaser``.
"""

from typing import Annotated

from fastapi import Depends

from vidtube.services.media import (
    AssetReleaser,
    MediaStore,
    get_asset_releaser,
    get_media_store,
)

MediaStoreDep = Annotated[MediaStore, Depends(get_media_store)]
ReleaserDep = Annotated[AssetReleaser, Depends(get_asset_releaser)]

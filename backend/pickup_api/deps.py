# pickup_api/deps.py
from fastapi import Depends
from sqlalchemy.orm import Session

from pickup_api.config import Settings, get_settings
from pickup_api.db import get_db
from pickup_api.services.collectors import CollectorDirectory
from pickup_api.services.lifecycle import LifecycleController
from pickup_api.services.listings import ListingCatalog
from pickup_api.utils.clock import Clock, IdFactory, get_clock, get_id_factory


def get_lifecycle(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    clock: Clock = Depends(get_clock),
    id_factory: IdFactory = Depends(get_id_factory),
) -> LifecycleController:
    return LifecycleController(db, settings, clock=clock, id_factory=id_factory)


def get_directory(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    id_factory: IdFactory = Depends(get_id_factory),
) -> CollectorDirectory:
    return CollectorDirectory(db, clock=clock, id_factory=id_factory)


def get_catalog(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    id_factory: IdFactory = Depends(get_id_factory),
) -> ListingCatalog:
    return ListingCatalog(db, clock=clock, id_factory=id_factory)

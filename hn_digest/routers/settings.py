from fastapi import APIRouter, Depends
from ..logging_setup import get_logger
from ..schema import SettingIn, SettingsOut
from .deps import digest_scheduler, require_admin, settings_manager

logger = get_logger("hn_digest.routes.settings")

router = APIRouter(prefix="/settings", tags=["Settings"])

@router.get("", response_model=SettingsOut)
def get_settings(settings=Depends(settings_manager)):
    return SettingsOut(settings=settings.snapshot())

@router.put("/{key}")
def put_setting(key: str, body: SettingIn, settings=Depends(settings_manager),
                scheduler=Depends(digest_scheduler), _: None = Depends(require_admin)):
    """
    Validate and persist one setting.
    - digest_time retimes the running scheduler immediately
    - timezone is stored and takes effect on the next start
    - tunables are picked up by the next digest run
    """
    logger.info(f"Updating setting {key}")
    settings.set(key, body.value)
    value, _found = settings.get(key)
    if key == "digest_time":
        scheduler.update(value)
    return {"ok": True, "key": key, "value": value, "restart_required": key == "timezone"}

from leavetest.schemas.settings import AssessmentSettings, AssessmentSettingsUpdate
from leavetest.services.settings_service import SettingsService


async def test_defaults_without_stored_row(db):
    snapshot = await SettingsService(db).current()
    assert snapshot == AssessmentSettings()
    assert snapshot.round1_passing_percentage == 60.0
    assert snapshot.violation_penalty_percent == 5.0


async def test_update_only_touches_given_fields(db):
    service = SettingsService(db)
    updated = await service.update(AssessmentSettingsUpdate(max_violations=3), updated_by=42)
    assert updated.max_violations == 3
    assert updated.mcq_count == 10

    updated = await service.update(AssessmentSettingsUpdate(require_fullscreen=False))
    assert updated.max_violations == 3
    assert updated.require_fullscreen is False
    assert (await service.current()).require_fullscreen is False

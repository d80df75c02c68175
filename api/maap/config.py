class MaapConfig:
    def __init__(self):
        self.default_page_size: int = 25
        self.max_page_size: int = 200
        # spotlights show the leader plus this many runners-up
        self.spotlight_runner_ups: int = 1


maap_config = MaapConfig()


class Constants:
    TRUTHY_FLAGS = ("1", "true", "True", True, 1)
    FALSY_FLAGS = ("0", "false", "False", False, 0)

    FLASH_ALERT_HEADER = "X-Flash-Alert"

    FINALIZATION_SUCCESS_NOTICE = "Check-ins finalized successfully."
    OBSERVATION_NOT_VISIBLE_ALERT = "You are not authorized to view this observation."

    @staticmethod
    def finalization_path(organization_id: int, teammate_id: int) -> str:
        return f"/organizations/{organization_id}/teammates/{teammate_id}/finalization"

    @staticmethod
    def finalization_complete_path(organization_id: int, teammate_id: int, snapshot_id: int) -> str:
        return (
            f"/organizations/{organization_id}/teammates/{teammate_id}"
            f"/finalization/complete?snapshot_id={snapshot_id}"
        )

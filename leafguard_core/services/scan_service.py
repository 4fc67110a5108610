# =============================================================================
# leafguard_core/services/scan_service.py
# Scan Service - Disease Detection and Scan History
# =============================================================================

from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional

import pandas as pd

from .base_service import BaseService, ServiceResult
from leafguard_core.api.models import DetectionResult, SavedScan, ScanInput
from leafguard_core.errors import LeafGuardError


HISTORY_COLUMNS = ["id", "plant_name", "disease", "confidence", "created_at"]


@dataclass
class ScanOutcome:
    """A detection plus the history record it produced, if it was saved"""
    detection: DetectionResult
    saved: Optional[SavedScan] = None


class ScanService(BaseService):
    """
    Service for plant scans.

    Handles:
    - Detection with scan-count bookkeeping
    - Saving detections to history
    - Scan history and disease trends as DataFrames

    Usage:
        service = ScanService(client, auth)

        result = service.detect_and_record(image_bytes, "Tomato")
        if result.success:
            print(result.data.detection.disease)

        trends = service.disease_trends(freq="M")
    """

    offline_message = "Scanning needs a connection to the LeafGuard server."

    def detect_and_record(
        self,
        image_bytes: bytes,
        plant_name: str,
        save: bool = True,
        filename: str = "plant.jpg",
        content_type: str = "image/jpeg",
    ) -> ServiceResult:
        """
        Detect the disease on a plant photo and optionally save it to history.

        The remaining scan count reported by the server is written back to the
        profile. A refused scan (InsufficientScans) leaves the profile alone.
        A detection whose save fails is still returned, with saved=None and
        metadata["save_error"] / metadata["save_error_code"] set.

        Returns:
            ServiceResult whose data is a ScanOutcome
        """
        def _detect() -> ServiceResult:
            self.require_server_session()
            detection = self.client.detect_disease(image_bytes, filename, content_type)
            self.auth.update_remaining_scans(detection.remaining_scans)

            if not save:
                return ServiceResult.ok(ScanOutcome(detection))

            try:
                saved = self.client.save_scan(
                    ScanInput(plant_name=plant_name, detection=detection)
                )
            except LeafGuardError as e:
                failed = self.fail(e)
                self.logger.warning(f"Detection kept, scan not saved: [{e.code}] {e.message}")
                return ServiceResult.ok(
                    ScanOutcome(detection),
                    metadata={"save_error": failed.error, "save_error_code": failed.error_code},
                )
            return ServiceResult.ok(ScanOutcome(detection, saved))

        return self.safe_execute(f"Detecting disease on {plant_name or 'plant'}", _detect)

    def recent_scans(self) -> ServiceResult:
        """Latest scans across all users, for the home screen"""
        def _recent() -> List[SavedScan]:
            self.require_server_session()
            return self.client.get_recent_scans()

        return self.safe_execute("Loading recent scans", _recent)

    def _user_scans(self) -> pd.DataFrame:
        self.require_server_session()
        return self._to_frame(self.client.get_user_scans())

    def scan_history(self) -> ServiceResult:
        """
        The signed-in user's scans as a DataFrame, newest first.

        Returns:
            ServiceResult whose data is a DataFrame with HISTORY_COLUMNS
        """
        return self.safe_execute("Loading scan history", self._user_scans)

    def disease_trends(self, freq: str = "M") -> ServiceResult:
        """
        Count scans per disease per period.

        Args:
            freq: pandas period alias ("D", "W", "M", ...)

        Returns:
            ServiceResult whose data is a DataFrame indexed by period with one
            column per disease
        """
        def _trends() -> pd.DataFrame:
            df = self._user_scans()
            df = df.dropna(subset=["created_at"])
            if df.empty:
                return pd.DataFrame()

            created = pd.to_datetime(df["created_at"], utc=True).dt.tz_localize(None)
            df = df.assign(period=created.dt.to_period(freq))
            return (
                df.groupby(["period", "disease"])
                .size()
                .unstack(fill_value=0)
                .sort_index()
            )

        return self.safe_execute("Computing disease trends", _trends)

    @staticmethod
    def _to_frame(scans: List[SavedScan]) -> pd.DataFrame:
        df = pd.DataFrame([scan.to_record() for scan in scans], columns=HISTORY_COLUMNS)
        if df.empty:
            return df
        return df.sort_values("created_at", ascending=False, na_position="last").reset_index(
            drop=True
        )

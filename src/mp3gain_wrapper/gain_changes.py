from dataclasses import dataclass, replace

from mp3gain_wrapper.gain_config import clipping_threshold, db_per_gain_step


@dataclass(frozen=True)
class UndoGainChange:
    file_path: str
    left_gain_change: int = 0
    right_gain_change: int = 0

    def has_no_changes(self) -> bool:
        return self.left_gain_change == 0 and self.right_gain_change == 0


@dataclass(frozen=True)
class AppliedGainChange:
    file_path: str
    gain_steps: int
    gain_db: float
    peak_amplitude: float
    max_global_gain: int
    min_global_gain: int

    def has_clipping(self) -> bool:
        return self.peak_amplitude > clipping_threshold


@dataclass(frozen=True)
class RecommendedGainChange:
    file_path: str
    gain_steps: int
    gain_db: float
    peak_amplitude: float
    max_global_gain: int
    min_global_gain: int
    # Summary of the whole batch, shared by every file analyzed in the same call.
    album_change: "RecommendedGainChange | None" = None

    def has_clipping(self) -> bool:
        return self.peak_amplitude > clipping_threshold

    def with_album_change(
        self, album_change: "RecommendedGainChange | None"
    ) -> "RecommendedGainChange":
        return replace(self, album_change=album_change)


@dataclass(frozen=True)
class AddedGainChange:
    file_path: str
    gain_steps: int

    @property
    def gain_db(self) -> float:
        return self.gain_steps * db_per_gain_step

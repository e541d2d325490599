import logging
import os
from datetime import date
from typing import Optional

from config import REPORT_DIR, UNSET_DEPTH

logger = logging.getLogger(__name__)

NO_IRRIGATION = ("Recommendation: Based on the SMS and weather data input into the model, "
                 "no irrigation is recommended tomorrow.")


def report_file_name(crop: str, soil: str, today: Optional[date] = None) -> str:
    # Report<CROP><soil><month><day><year>.txt, month/day not zero padded
    d = today or date.today()
    return f"Report{crop.upper()}{soil.lower()}{d.month}{d.day}{d.year}.txt"


class Recommendation:
    """Builds the plain-text recommendation report for one crop/soil pair."""

    def __init__(self, crop: str, soil: str, report_dir: Optional[str] = None, today: Optional[date] = None):
        self.crop = crop
        self.soil = soil
        self.today = today or date.today()
        self.depths = {1: None, 2: None, 3: None}
        base = report_dir or REPORT_DIR or os.getcwd()
        self.file_path = os.path.join(os.path.abspath(base), report_file_name(crop, soil, self.today))

    def set_sensor_depth(self, sensor_num: int, depth: float):
        """Sensor 1 is always recorded; sensors 2 and 3 are skipped when given as -1."""
        if sensor_num == 1:
            self.depths[1] = depth
        elif sensor_num in (2, 3) and depth is not None and depth != UNSET_DEPTH:
            self.depths[sensor_num] = depth
        else:
            return
        logger.info(f"Sensor depth {sensor_num} set to {depth}.")

    @property
    def num_depths(self) -> int:
        return sum(1 for d in self.depths.values() if d is not None)

    def _depth_lines(self):
        if not self.num_depths:
            return []
        lines = []
        for i in (1, 2, 3):
            d = self.depths[i]
            lines.append(f"Sensor Depth {i}: {d} inches" if d is not None else f"Sensor Depth {i}: N/A")
        return lines

    def render(self, results: str) -> str:
        d = self.today
        lines = [
            f"Irrigation Recommendation Report for {d.month}/{d.day}/{d.year}",
            f"Crop Type: {self.crop}",
            f"Soil Type: {self.soil}",
        ]
        lines += self._depth_lines()
        lines.append("")
        if not results:
            lines.append(NO_IRRIGATION)
        else:
            lines.append("Recommendation: Based on the SMS and weather data input into the model, "
                         f"tomorrow's recommended irrigation amount is {results} inches.")
        return "\n".join(lines) + "\n"

    def create_report(self, results: str) -> Optional[str]:
        """Write the report and return its path, or None if it could not be written."""
        logger.info(f"Number of Sensors: {self.num_depths}")
        try:
            with open(self.file_path, "w", encoding="utf-8") as f:
                f.write(self.render(results))
        except OSError as e:
            logger.error(f"Could not write report to {self.file_path}: {e}")
            return None
        return self.file_path

import argparse, csv, math, random, pathlib
from datetime import date, timedelta

from config import COLUMN_PRESETS, DATA_PATH


WEATHER_COLS = ["rain_in", "et0_in"]
SENSOR_COLS = ["moisture_pct", "soil_temp_f", "ec_ds_m"]

def header_for(sensors: int):
    cols = ["date"]
    for s in range(1, sensors + 1):
        cols += [f"sms{s}_{c}" for c in SENSOR_COLS]
    cols += WEATHER_COLS
    cols.append("irrigation_in")
    return cols

def synthetic_day(t: int, sensors: int, moisture: float):
    """One day of readings; `moisture` is the carried-over root-zone moisture (%)."""
    season = math.sin(2 * math.pi * t / 365.0)
    et0 = max(0.0, 0.18 + 0.08 * season + random.uniform(-0.03, 0.03))
    rain = random.choice([0.0] * 6 + [round(random.uniform(0.05, 1.2), 2)])
    moisture = moisture - 40 * et0 + 30 * rain
    irrigation = 0.0
    if moisture < 22:
        irrigation = round(min(1.5, (30 - moisture) / 25.0), 2)
        moisture += 25 * irrigation
    moisture = min(45.0, max(5.0, moisture))

    row = []
    for s in range(sensors):
        depth_lag = 1.5 * s  # deeper sensors respond more slowly
        row += [
            round(moisture + depth_lag + random.uniform(-1, 1), 2),
            round(70 + 12 * season - 2 * s + random.uniform(-2, 2), 1),
            round(0.4 + 0.02 * s + random.uniform(-0.05, 0.05), 3),
        ]
    row += [rain, round(et0, 3)]
    return row, irrigation, moisture

def seed(csv_path: str, days: int, sensors: int = 1, start: date = None, random_state: int = None):
    """Write `days` rows of synthetic history to `csv_path` and return the column count."""
    if sensors not in COLUMN_PRESETS:
        raise ValueError(f"sensors must be one of {sorted(COLUMN_PRESETS)}, got {sensors}")
    if random_state is not None:
        random.seed(random_state)
    path = pathlib.Path(csv_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    start = start or (date.today() - timedelta(days=days))

    moisture = 30.0
    with open(path, "w", encoding="utf-8", newline="") as f:
        w = csv.writer(f)
        w.writerow(header_for(sensors))
        for i in range(days):
            d = start + timedelta(days=i)
            values, irrigation, moisture = synthetic_day(i, sensors, moisture)
            w.writerow([d.isoformat()] + values + [irrigation])
    return COLUMN_PRESETS[sensors]

if __name__ == "__main__":
    ap = argparse.ArgumentParser(description="Write a synthetic irrigation history CSV")
    ap.add_argument("--days", type=int, default=365)
    ap.add_argument("--sensors", type=int, choices=sorted(COLUMN_PRESETS), default=1)
    ap.add_argument("--out", default=DATA_PATH)
    ap.add_argument("--seed", type=int, default=None)
    args = ap.parse_args()

    cols = seed(args.out, args.days, sensors=args.sensors, random_state=args.seed)
    print(f"Seeded {args.days} days ({cols} columns) into {args.out}")

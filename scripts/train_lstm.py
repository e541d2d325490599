import os, sys, logging
sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from config import COLUMN_PRESETS, DEFAULT_EPOCHS, DEFAULT_WINDOW_LENGTH
from normalization import GlobalMinMaxNormalizer
from dataset_iterator import IrrigationDatasetIterator
from recommender import train_model

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')

ROOT = os.path.dirname(os.path.dirname(__file__))
csv_path = os.path.join(ROOT, "data", "history.csv")
artifacts_dir = os.path.join(ROOT, "artifacts")

if not os.path.exists(csv_path):
    raise FileNotFoundError(f"Training CSV not found at: {csv_path}")

# Single-sensor layout: date, 3 sensor columns, rain, et0, irrigation
columns = int(os.getenv("IRS_COLUMNS", str(COLUMN_PRESETS[1])))

# fit one set of min/max statistics over the whole file instead of per batch
with IrrigationDatasetIterator(csv_path, columns=columns, window_length=DEFAULT_WINDOW_LENGTH, indexed=True) as it:
    normalizer = GlobalMinMaxNormalizer().fit_iterator(it)
normalizer.save(os.path.join(artifacts_dir, "normalizer.pkl"))

_, stats = train_model(csv_path, columns, window_length=DEFAULT_WINDOW_LENGTH,
                       epochs=DEFAULT_EPOCHS, normalizer=normalizer)
print(f"Trained on {stats['batches']} batches, mse={stats['mse']}, mae={stats['mae']}")
print(f"Saved normalizer to {artifacts_dir}")

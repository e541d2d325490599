import logging
import numpy as np
from keras.models import Model
from keras.layers import Input, LSTM, TimeDistributed, Dense


logger = logging.getLogger(__name__)

def build_lstm_regressor(n_feats, latent=32):
    # sequence-to-sequence: one irrigation estimate per time step, any window length
    inp = Input(shape=(None, n_feats))
    x = LSTM(latent, return_sequences=True)(inp)
    out = TimeDistributed(Dense(1))(x)
    model = Model(inp, out)
    model.compile(optimizer="adam", loss="mse", metrics=["mae"])
    return model

def train_on_iterator(model, iterator, epochs=10):
    """
    Fit `model` one minibatch at a time. The iterator is reset at the end of
    every epoch. Returns the per-epoch mean loss.
    """
    history = []
    for epoch in range(epochs):
        losses = []
        while iterator.has_next():
            x, y = iterator.next().as_sequences()
            res = model.train_on_batch(x, y)
            losses.append(float(np.ravel(res)[0]))
        iterator.reset()
        if not losses:
            logger.warning("Iterator produced no batches; nothing to train on")
            break
        history.append(float(np.mean(losses)))
        logger.debug(f"epoch={epoch} loss={history[-1]:.4f}")
    return history

def evaluate_on_iterator(model, iterator):
    # regression stats over every remaining batch
    errs, abs_errs = [], []
    while iterator.has_next():
        x, y = iterator.next().as_sequences()
        pred = np.asarray(model.predict_on_batch(x))
        errs.append(np.mean((pred - y) ** 2))
        abs_errs.append(np.mean(np.abs(pred - y)))
    iterator.reset()
    if not errs:
        return {"batches": 0, "mse": None, "mae": None}
    return {"batches": len(errs), "mse": float(np.mean(errs)), "mae": float(np.mean(abs_errs))}

def predict_last_step(model, x):
    # x: [n, T, F]; returns the estimate for the final time step of the last window
    pred = np.asarray(model.predict_on_batch(x))
    return float(pred[-1, -1, 0])

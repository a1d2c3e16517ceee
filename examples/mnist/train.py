"""MNIST Training Script

Train a small CNN on MNIST handwritten digits (0-9) with the image
classification task.

Dataset: MNIST (28x28 grayscale images), IDX .gz files
Classes: 10 (digits 0-9)

Place the .gz files in $FASTBLOCKS_DATADIR/mnist.
"""
import logging

import numpy as np
from fastblocks import (
    Image, Label, ImageClassificationSingle, loaddataset, tasklearner, fitonecycle, lrfind, EarlyStopping,
    savetaskmodel, loadtaskmodel, predict, showoutputs, setup_logging,
)
from fastblocks.vision import convbackbone

logger = logging.getLogger("fastblocks.examples.mnist")


def main():
    setup_logging()
    data, blocks = loaddataset('mnist', (Image, Label))
    task = ImageClassificationSingle(blocks, size=(28, 28), C='L')
    logger.info("Loaded %d samples of %s", len(data[1]), blocks)

    learner = tasklearner(task, data, backbone=convbackbone((8, 16, 32)), batchsize=64, pctgval=0.1,
                          callbacks=[EarlyStopping(patience=3)], num_threads=4, prefetch=2,
                          rng=np.random.default_rng(42))

    result = lrfind(learner, nsteps=50)
    maxlr = result.steepest()
    logger.info("Learning rate finder: %s", result)

    history = fitonecycle(learner, 5, maxlr=maxlr)
    learner.model.summary()
    logger.info("Best validation accuracy: %.4f", max(history['val_accuracy']))

    showoutputs(task, learner)

    savetaskmodel('mnist_task.h5', task, learner.model, force=True)
    task, model = loadtaskmodel('mnist_task.h5')
    image = data[0][0]
    logger.info("Reloaded model predicts %s", predict(task, model, image))


if __name__ == '__main__':
    main()

"""Adult Census Training Script

Predict whether a person earns more than 50k a year from census columns.

Place adult.csv in $FASTBLOCKS_DATADIR/adult_sample.
"""
import logging

from fastblocks import TableRow, Label, TabularClassificationSingle, loaddataset, tasklearner, fitonecycle, \
    describetask, setup_logging

logger = logging.getLogger("fastblocks.examples.adult")


def main():
    setup_logging()
    data, blocks = loaddataset('adult_sample', (TableRow, Label))
    task = TabularClassificationSingle(blocks, data=data)
    print(describetask(task))

    learner = tasklearner(task, data, batchsize=128, lr=1e-3)
    history = fitonecycle(learner, 3, maxlr=1e-2)
    logger.info("Validation accuracy per epoch: %s", ['%.4f' % v for v in history['val_accuracy']])


if __name__ == '__main__':
    main()

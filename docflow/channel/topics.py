SUBMISSION_FOUND = "submission.found"
EXTRACTION_INIT = "ocr.init"
CLASSIFICATION_INIT = "classification.init"
EVENT_PIPELINE = "event.pipeline"

ALL_TOPICS = (SUBMISSION_FOUND, EXTRACTION_INIT, CLASSIFICATION_INIT, EVENT_PIPELINE)

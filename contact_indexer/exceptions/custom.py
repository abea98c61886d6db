class InvalidQueryError(Exception):
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ContactNotFoundError(Exception):
    def __init__(self, contact_id: int):
        self.contact_id = contact_id
        self.message = "Contact not found!"
        super().__init__(f"Contact {contact_id} not found")


class SearchFailedError(Exception):
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class StoreUnavailableError(Exception):
    def __init__(self, message: str, retry_after: float | None = None):
        self.message = message
        self.retry_after = retry_after
        super().__init__(message)


class JobNotFoundError(Exception):
    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Job {job_id} not found")


class IngestionAlreadyRunningError(Exception):
    def __init__(self):
        super().__init__("An ingestion run is already in progress")

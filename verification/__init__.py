# Batch verification of the license roster
from verification.jobs import ErrorDetail, JobProgress, JobStatus, Outcome, VerificationJob
from verification.runner import VerificationJobRunner

__all__ = [
    "ErrorDetail",
    "JobProgress",
    "JobStatus",
    "Outcome",
    "VerificationJob",
    "VerificationJobRunner",
]

"""gitstory: commit classification and onboarding timelines."""

from repo_events import EventRepo

for name, count in EventRepo().candidate_counts().items():
    print(f"{name}:", "missing" if count is None else count)

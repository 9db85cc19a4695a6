from typing import Iterable, List, Optional


def folder_segments(folders: Optional[Iterable[str]]) -> List[str]:
    """Flattens raw folder entries ("team/sub", " baz ") into clean path segments."""
    segments = []
    for raw in folders or ():
        for piece in raw.split('/'):
            piece = piece.strip()
            if piece:
                segments.append(piece)
    return segments


def job_segments(folders, job_name: str) -> Optional[List[str]]:
    """Returns folder segments plus the job name, or None for a top-level job."""
    segments = folder_segments(folders)
    if not segments:
        return None
    return segments + [job_name]


def nested_job_path(folders, job_name: str) -> Optional[str]:
    # /job/team/job/sub/job/deploy
    segments = job_segments(folders, job_name)
    if segments is None:
        return None
    return ''.join(f"/job/{segment}" for segment in segments)


def full_job_name(folders, job_name: str) -> str:
    """Slash separated name accepted by the python-jenkins name based calls, e.g. 'team/sub/deploy'."""
    return '/'.join(folder_segments(folders) + [job_name])

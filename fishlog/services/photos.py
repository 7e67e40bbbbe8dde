"""Catch photo paths and the storage that serves them"""
import os
import posixpath

ALLOWED_EXTENSIONS = ('jpg', 'jpeg', 'png', 'webp')


def validate_photo_path(path, owner_id):
    """Returns None for a path inside the owner's folder, else the rejection reason"""
    if '..' in path or path.startswith('/') or '\\' in path:
        return 'invalid photo path'

    segments = path.split('/')
    if len(segments) != 2 or not all(segments):
        return 'photo path must be <user_id>/<file>'
    if segments[0] != owner_id:
        return 'photo path must be inside the user folder'

    extension = posixpath.splitext(segments[1])[1].lower().lstrip('.')
    if extension not in ALLOWED_EXTENSIONS:
        return 'photo must be one of: ' + ', '.join(ALLOWED_EXTENSIONS)
    return None


class PhotoStorage:
    """Local photo storage; uploads happen elsewhere, this only resolves stored paths"""

    def __init__(self, root, url_prefix):
        self.root = root
        self.url_prefix = url_prefix.rstrip('/')

    def exists(self, path):
        return os.path.isfile(os.path.join(self.root, *path.split('/')))

    def url_for(self, path):
        if not path or not self.exists(path):
            return None
        return f'{self.url_prefix}/{path}'

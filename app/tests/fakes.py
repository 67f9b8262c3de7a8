"""In-process stand-in for the Supabase client (auth + storage) used by the API tests."""

from types import SimpleNamespace


class FakeAuth:
    def __init__(self):
        self.passwords = {}
        self.reset_requests = []
        self.sign_outs = 0

    def sign_up(self, credentials):
        email = credentials["email"]
        if email in self.passwords:
            raise Exception("User already registered")
        self.passwords[email] = credentials["password"]
        return SimpleNamespace(user=SimpleNamespace(id=f"auth-{email}"), session=None)

    def sign_in_with_password(self, credentials):
        email = credentials["email"]
        if self.passwords.get(email) != credentials["password"]:
            raise Exception("Invalid login credentials")
        user = SimpleNamespace(id=f"auth-{email}")
        return SimpleNamespace(user=user, session=SimpleNamespace(access_token=user.id))

    def get_user(self, jwt=None):
        # Tokens are the auth ids themselves; anything prefixed "invalid" is rejected.
        if not jwt or jwt.startswith("invalid"):
            raise Exception("invalid JWT")
        return SimpleNamespace(user=SimpleNamespace(id=jwt))

    def sign_out(self):
        self.sign_outs += 1

    def reset_password_for_email(self, email, options=None):
        self.reset_requests.append((email, options or {}))


class FakeBucket:
    def __init__(self, name, files):
        self.name = name
        self.files = files

    def upload(self, path, content, file_options=None):
        self.files[(self.name, path)] = (content, file_options or {})
        return SimpleNamespace(path=path)

    def get_public_url(self, path):
        return f"https://storage.test/{self.name}/{path}"


class FakeStorage:
    def __init__(self):
        self.files = {}

    def from_(self, bucket):
        return FakeBucket(bucket, self.files)


class FakeSupabase:
    def __init__(self):
        self.auth = FakeAuth()
        self.storage = FakeStorage()

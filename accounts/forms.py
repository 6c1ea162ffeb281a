from django import forms

from core.choices import Role


class LoginForm(forms.Form):
    """Email and password sign-in against the CourseFlow backend."""

    email = forms.EmailField(
        label="Email",
        widget=forms.EmailInput(attrs={
            'autofocus': True,
            'autocomplete': 'email',
        })
    )
    password = forms.CharField(
        label="Password",
        strip=False,
        widget=forms.PasswordInput(attrs={
            'autocomplete': 'current-password',
        })
    )


class RegisterForm(forms.Form):
    """Self-registration. Staff roles need a verification code from an admin."""

    ROLES_REQUIRING_CODE = (Role.LECTURER, Role.HOD, Role.ADMIN)

    matric_no = forms.CharField(
        label="Matric Number",
        max_length=30,
        widget=forms.TextInput(attrs={'placeholder': 'e.g., CSC/2021/001'})
    )
    name = forms.CharField(label="Full Name", max_length=120, required=False)
    email = forms.EmailField(
        label="Email",
        widget=forms.EmailInput(attrs={'autocomplete': 'email'})
    )
    password = forms.CharField(
        label="Password",
        strip=False,
        min_length=6,
        widget=forms.PasswordInput(attrs={'autocomplete': 'new-password'})
    )
    confirm_password = forms.CharField(
        label="Confirm Password",
        strip=False,
        widget=forms.PasswordInput(attrs={'autocomplete': 'new-password'})
    )
    role = forms.ChoiceField(choices=Role.choices, initial=Role.STUDENT)
    verification_code = forms.CharField(
        label="Verification Code",
        max_length=64,
        required=False,
        help_text="Required for lecturer, HOD and admin accounts. Contact an admin for a code."
    )

    def clean_matric_no(self):
        return self.cleaned_data['matric_no'].strip().upper()

    def clean(self):
        cleaned_data = super().clean()
        password = cleaned_data.get('password')
        confirm = cleaned_data.get('confirm_password')
        role = cleaned_data.get('role')

        if password and confirm and password != confirm:
            self.add_error('confirm_password', 'Passwords do not match.')

        if role in self.ROLES_REQUIRING_CODE and not (cleaned_data.get('verification_code') or '').strip():
            self.add_error(
                'verification_code',
                f'A verification code is required for {Role(role).label.lower()} accounts.'
            )

        return cleaned_data

    def to_payload(self):
        """Request body in the backend's field names."""
        data = self.cleaned_data
        payload = {
            'matricNO': data['matric_no'],
            'email': data['email'],
            'password': data['password'],
            'role': data['role'],
        }
        if data.get('name'):
            payload['name'] = data['name'].strip()
        if data.get('verification_code'):
            payload['verificationCode'] = data['verification_code'].strip()
        return payload

from django import forms


class ComplaintForm(forms.Form):
    """Form for submitting a complaint."""

    name = forms.CharField(max_length=120)
    email = forms.EmailField()
    department = forms.ChoiceField(choices=[])
    subject = forms.CharField(
        max_length=200,
        widget=forms.TextInput(attrs={'placeholder': 'Brief summary of the issue'})
    )
    message = forms.CharField(
        widget=forms.Textarea(attrs={'rows': 5, 'placeholder': 'Describe your complaint in detail'})
    )

    def __init__(self, *args, departments=None, user=None, **kwargs):
        if user is not None and not args and 'initial' not in kwargs:
            kwargs['initial'] = {'name': user.name, 'email': user.email}
        super().__init__(*args, **kwargs)

        # Complaints record the department by name
        self.fields['department'].choices = [('', 'Select department')] + [
            (d['name'], d['name']) for d in departments or [] if d.get('name')
        ]

    def to_payload(self):
        data = self.cleaned_data
        return {
            'name': data['name'].strip(),
            'email': data['email'],
            'department': data['department'],
            'subject': data['subject'].strip(),
            'message': data['message'].strip(),
        }

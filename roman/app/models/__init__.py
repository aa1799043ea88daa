from roman.app.models.resume import Resume

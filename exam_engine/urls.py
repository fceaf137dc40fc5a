from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('admin/', admin.site.urls),

    # --- Authentication & profile ---
    path('api/', include('users.urls')),

    # --- Exam catalog (teachers) ---
    path('api/', include('exams.urls')),

    # --- Assignments & attempts ---
    path('api/', include('assessments.urls')),
]

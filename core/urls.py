from django.urls import path
from . import views

app_name = 'core'

urlpatterns = [
    path('notifications/', views.notification_list, name='notification_list'),
    path('notifications/unread-count/', views.notification_unread_count, name='notification_unread_count'),
    path('notifications/read-all/', views.notification_mark_all_read, name='notification_mark_all_read'),
    path('notifications/<uuid:pk>/read/', views.notification_mark_read, name='notification_mark_read'),
    path('coins/', views.coin_history, name='coin_history'),
]
